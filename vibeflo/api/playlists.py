import logging

from vibeflo.api.base import ResourceAPI, require_numeric_id
from vibeflo.schemas.playlist import PlaylistUpdate, Track

logger = logging.getLogger(__name__)


class PlaylistAPI(ResourceAPI):
    async def get_user_playlists(self) -> list[dict]:
        logger.info("Fetching user playlists")
        return await self._fetch_list("/playlists")

    async def get_playlist(self, playlist_id) -> dict:
        playlist_id = require_numeric_id(playlist_id, "playlist")
        return await self.gateway.get(f"/playlists/{playlist_id}")

    async def create_playlist(
        self,
        name: str,
        tracks: list[Track] | None = None,
        description: str | None = None,
    ) -> dict:
        payload = {
            "name": name,
            "description": description,
            "tracks": [t.playlist_entry() for t in tracks or []],
        }
        return await self.gateway.post("/playlists", json=payload)

    async def update_playlist(self, playlist_id, data: PlaylistUpdate) -> dict:
        playlist_id = require_numeric_id(playlist_id, "playlist")
        payload = data.model_dump(exclude_unset=True)
        if data.tracks is not None:
            payload["tracks"] = [t.playlist_entry() for t in data.tracks]
        return await self.gateway.put(f"/playlists/{playlist_id}", json=payload)

    async def delete_playlist(self, playlist_id) -> dict | None:
        playlist_id = require_numeric_id(playlist_id, "playlist")
        return await self.gateway.delete(f"/playlists/{playlist_id}")

    async def add_track(self, playlist_id, track: Track) -> dict:
        playlist_id = require_numeric_id(playlist_id, "playlist")
        return await self.gateway.post(
            f"/playlists/{playlist_id}/songs", json=track.song_payload()
        )
