"""Posts and notifications. Both lists are kept newest first."""

from __future__ import annotations

from spidermusic.core.utils import new_id, normalize_id, now_ms, record_id
from spidermusic.repositories.json_storage import DocumentStore
from spidermusic.services.errors import NotFoundError, ValidationError
from spidermusic.services.media_service import MediaStorage, kind_for

POSTS = "posts"
NOTIFICATIONS = "notifications"


class SocialService:
    def __init__(self, store: DocumentStore, media: MediaStorage | None = None) -> None:
        self.store = store
        self.media = media

    def _remove(self, collection: str, item_id) -> bool:
        wanted = normalize_id(item_id)
        with self.store.update(collection, []) as records:
            kept = [r for r in records if not (isinstance(r, dict) and record_id(r) == wanted)]
            removed = len(kept) != len(records)
            records[:] = kept
        return removed

    # -------------------------- posts --------------------------
    def list_posts(self) -> list[dict]:
        return list(self.store.load(POSTS, []))

    def create_post(
        self,
        author: str,
        *,
        title: str = "",
        content: str = "",
        media: str = "",
        post_type: str = "text",
    ) -> dict:
        if not author:
            raise ValidationError("Missing author")
        media_url = media or ""
        if self.media and media_url:
            media_url = self.media.resolve(media_url, kind_for(media_url), "post")
        post = {
            "id": new_id(),
            "title": title or "",
            "content": content or "",
            "media": media_url,
            "type": post_type or "text",
            "author": author,
            "likes": [],
            "comments": [],
            "createdAt": now_ms(),
        }
        with self.store.update(POSTS, []) as posts:
            posts.insert(0, post)
        return post

    def delete_post(self, post_id) -> bool:
        return self._remove(POSTS, post_id)

    def toggle_post_like(self, post_id, username: str) -> bool:
        """Returns True when the post is now liked by `username`."""
        if not username:
            raise ValidationError("Missing username")
        wanted = normalize_id(post_id)
        with self.store.update(POSTS, []) as posts:
            post = next((p for p in posts if isinstance(p, dict) and record_id(p) == wanted), None)
            if not post:
                raise NotFoundError("Post not found")
            likes = list(post.get("likes") or [])
            if username in likes:
                likes.remove(username)
                liked = False
            else:
                likes.append(username)
                liked = True
            post["likes"] = likes
        return liked

    # -------------------------- notifications --------------------------
    def list_notifications(self, username: str | None = None) -> list[dict]:
        notifications = [n for n in self.store.load(NOTIFICATIONS, []) if isinstance(n, dict)]
        if not username:
            return notifications
        # "user" is the field name older records used for the recipient
        return [n for n in notifications if username in (n.get("targetUser"), n.get("user"))]

    def notify(self, target_user: str, message: str, sender: str | None = None) -> dict:
        if not target_user or not message:
            raise ValidationError("Missing targetUser/message")
        notification = {
            "id": new_id(),
            "targetUser": target_user,
            "message": message,
            "sender": sender or "System",
            "read": False,
            "createdAt": now_ms(),
        }
        with self.store.update(NOTIFICATIONS, []) as notifications:
            notifications.insert(0, notification)
        return notification

    def mark_read(self, notification_id) -> dict:
        wanted = normalize_id(notification_id)
        with self.store.update(NOTIFICATIONS, []) as notifications:
            for notification in notifications:
                if isinstance(notification, dict) and record_id(notification) == wanted:
                    notification["read"] = True
                    return notification
            raise NotFoundError("Notification not found")

    def delete_notification(self, notification_id) -> bool:
        return self._remove(NOTIFICATIONS, notification_id)
