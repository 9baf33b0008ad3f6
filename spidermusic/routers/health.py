from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
def health(request: Request):
    settings = request.app.state.settings
    return {
        "status": "ok",
        "dataDir": str(settings.data_dir),
        "storageRoot": str(settings.storage_root),
        "tokenRequired": bool(settings.storage_token),
        "publicBaseUrl": settings.public_base_url,
    }
