"""Songs, playlists, genres and artists."""

from __future__ import annotations

from typing import Optional
import logging

from spidermusic.core.utils import new_id, normalize_id, now_ms, record_id
from spidermusic.repositories.json_storage import DocumentStore
from spidermusic.services.errors import NotFoundError, ValidationError
from spidermusic.services.media_service import MediaStorage

logger = logging.getLogger(__name__)

SONGS = "songs"
PLAYLISTS = "playlists"
GENRES = "genres"
ARTISTS = "artists"


def _find(records: list, item_id) -> Optional[dict]:
    wanted = normalize_id(item_id)
    for record in records:
        if isinstance(record, dict) and record_id(record) == wanted:
            return record
    return None


def _genre_name(entry) -> str:
    return entry.get("name", "") if isinstance(entry, dict) else str(entry)


class LibraryService:
    def __init__(self, store: DocumentStore, media: MediaStorage | None = None) -> None:
        self.store = store
        self.media = media

    def _resolve(self, value, kind: str, prefix: str):
        if self.media and isinstance(value, str):
            return self.media.resolve(value, kind, prefix)
        return value

    # -------------------------- songs --------------------------
    def list_songs(self) -> list[dict]:
        return list(self.store.load(SONGS, []))

    def get_song(self, song_id) -> dict:
        song = _find(self.store.load(SONGS, []), song_id)
        if not song:
            raise NotFoundError("Song not found")
        return song

    def create_song(self, song: dict, audio_data: str | None = None) -> dict:
        song = dict(song or {})
        song.pop("audioData", None)
        cover = self._resolve(song.get("cover") or "", "images", "cover")
        src = song.get("src") or ""
        if not src and audio_data:
            src = self._resolve(audio_data, "audio", "audio")
        elif src.startswith("data:"):
            src = self._resolve(src, "audio", "audio")
        record = {
            **song,
            "id": normalize_id(song.get("id") or song.get("_id") or new_id()),
            "createdAt": song.get("createdAt") or now_ms(),
            "cover": cover,
            "src": src,
            "likes": song.get("likes") if isinstance(song.get("likes"), list) else [],
        }
        with self.store.update(SONGS, []) as songs:
            songs.append(record)
        return record

    def update_song(self, song_id, incoming: dict, audio_data: str | None = None) -> dict:
        incoming = dict(incoming or {})
        incoming.pop("audioData", None)
        cover = self._resolve(incoming.get("cover"), "images", "cover")
        src = incoming.get("src")
        if (not src or str(src).startswith("data:")) and audio_data:
            src = self._resolve(audio_data, "audio", "audio")
        elif isinstance(src, str) and src.startswith("data:"):
            src = self._resolve(src, "audio", "audio")
        with self.store.update(SONGS, []) as songs:
            current = _find(songs, song_id)
            if not current:
                raise NotFoundError("Song not found")
            stable_id = record_id(current) or normalize_id(song_id)
            current.update(incoming)
            current["id"] = stable_id
            if isinstance(cover, str):
                current["cover"] = cover
            if isinstance(src, str):
                current["src"] = src
        return current

    def delete_song(self, song_id) -> bool:
        """Remove a song and drop it from every playlist; False when it did not exist."""
        wanted = normalize_id(song_id)
        with self.store.update(SONGS, []) as songs:
            kept = [s for s in songs if not (isinstance(s, dict) and record_id(s) == wanted)]
            removed = len(kept) != len(songs)
            songs[:] = kept
        if removed:
            with self.store.update(PLAYLISTS, []) as playlists:
                for playlist in playlists:
                    if isinstance(playlist, dict) and isinstance(playlist.get("songs"), list):
                        playlist["songs"] = [s for s in playlist["songs"] if normalize_id(s) != wanted]
        return removed

    def like_song(self, song_id, username: str) -> dict:
        if not username:
            raise ValidationError("Missing username")
        with self.store.update(SONGS, []) as songs:
            song = _find(songs, song_id)
            if not song:
                raise NotFoundError("Song not found")
            likes = list(song.get("likes") or [])
            if username not in likes:
                likes.append(username)
            song["likes"] = likes
        return song

    # -------------------------- playlists --------------------------
    def list_playlists(self, owner: str | None = None, *, viewer: str | None = None) -> list[dict]:
        """All playlists, or one owner's; private ones only show to their owner."""
        result = []
        for playlist in self.store.load(PLAYLISTS, []):
            if not isinstance(playlist, dict):
                continue
            if owner and playlist.get("owner") != owner:
                continue
            if viewer is not None and not playlist.get("isPublic") and playlist.get("owner") != viewer:
                continue
            result.append(playlist)
        return result

    def create_playlist(self, name: str, owner: str, cover: str | None = None, is_public: bool = False) -> dict:
        if not name or not owner:
            raise ValidationError("Missing name/owner")
        playlist = {
            "id": new_id(),
            "name": name,
            "owner": owner,
            "cover": self._resolve(cover or "", "images", "playlist_cover"),
            "songs": [],
            "isPublic": bool(is_public),
            "createdAt": now_ms(),
        }
        with self.store.update(PLAYLISTS, []) as playlists:
            playlists.append(playlist)
        return playlist

    def update_playlist(
        self,
        playlist_id,
        *,
        name: str | None = None,
        cover: str | None = None,
        is_public: bool | None = None,
    ) -> dict:
        cover = self._resolve(cover, "images", "playlist_cover")
        with self.store.update(PLAYLISTS, []) as playlists:
            playlist = _find(playlists, playlist_id)
            if not playlist:
                raise NotFoundError("Playlist not found")
            if isinstance(name, str) and name.strip():
                playlist["name"] = name.strip()
            if isinstance(is_public, bool):
                playlist["isPublic"] = is_public
            if isinstance(cover, str):
                playlist["cover"] = cover
        return playlist

    def delete_playlist(self, playlist_id) -> bool:
        wanted = normalize_id(playlist_id)
        with self.store.update(PLAYLISTS, []) as playlists:
            kept = [p for p in playlists if not (isinstance(p, dict) and record_id(p) == wanted)]
            removed = len(kept) != len(playlists)
            playlists[:] = kept
        return removed

    def add_song_to_playlist(self, playlist_id, song_id) -> dict:
        if not song_id:
            raise ValidationError("Missing songId")
        with self.store.update(PLAYLISTS, []) as playlists:
            playlist = _find(playlists, playlist_id)
            if not playlist:
                raise NotFoundError("Playlist not found")
            songs = list(playlist.get("songs") or [])
            wanted = normalize_id(song_id)
            if all(normalize_id(s) != wanted for s in songs):
                songs.append(wanted)
            playlist["songs"] = songs
        return playlist

    def remove_song_from_playlist(self, playlist_id, song_id) -> dict:
        wanted = normalize_id(song_id)
        with self.store.update(PLAYLISTS, []) as playlists:
            playlist = _find(playlists, playlist_id)
            if not playlist:
                raise NotFoundError("Playlist not found")
            playlist["songs"] = [s for s in (playlist.get("songs") or []) if normalize_id(s) != wanted]
        return playlist

    # -------------------------- genres --------------------------
    def list_genres(self) -> list:
        return list(self.store.load(GENRES, []))

    def add_genre(self, name: str) -> bool:
        """Returns False when the genre was already there."""
        if not name:
            raise ValidationError("Missing name")
        with self.store.update(GENRES, []) as genres:
            if any(_genre_name(g) == name for g in genres):
                return False
            genres.append({"name": name})
        return True

    def delete_genre(self, name: str) -> bool:
        with self.store.update(GENRES, []) as genres:
            kept = [g for g in genres if _genre_name(g) != name]
            removed = len(kept) != len(genres)
            genres[:] = kept
        return removed

    # -------------------------- artists --------------------------
    def list_artists(self) -> list[dict]:
        return list(self.store.load(ARTISTS, []))

    def get_artist(self, name: str) -> dict:
        wanted = str(name or "").lower()
        for artist in self.store.load(ARTISTS, []):
            if isinstance(artist, dict) and (artist.get("name") or "").lower() == wanted:
                return artist
        raise NotFoundError("Artist not found")

    def upsert_artist(self, name: str, avatar: str | None = None, banner: str | None = None) -> dict:
        """Create the artist or refresh its name/images; names match case-insensitively."""
        if not name:
            raise ValidationError("Missing name")
        avatar = self._resolve(avatar, "images", "artist_avatar")
        banner = self._resolve(banner, "images", "artist_banner")
        with self.store.update(ARTISTS, []) as artists:
            for artist in artists:
                if isinstance(artist, dict) and (artist.get("name") or "").lower() == name.lower():
                    artist["name"] = name
                    if isinstance(avatar, str):
                        artist["avatar"] = avatar
                    if isinstance(banner, str):
                        artist["banner"] = banner
                    break
            else:
                artist = {"name": name, "avatar": avatar or "", "banner": banner or "", "followersCount": 0}
                artists.append(artist)
        logger.debug("Upserted artist %s", name)
        return artist
