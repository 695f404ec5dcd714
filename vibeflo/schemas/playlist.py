from pydantic import BaseModel, Field


class Track(BaseModel):
    id: str | None = None
    title: str = Field(min_length=1)
    artist: str = ""
    url: str
    artwork: str = ""
    duration: int = Field(default=0, ge=0)
    source: str | None = None

    def playlist_entry(self) -> dict:
        """Shape used when a playlist is created with its tracks."""
        return self.model_dump(include={"id", "title", "artist", "url", "artwork", "duration", "source"})

    def song_payload(self) -> dict:
        """Shape of ``POST /playlists/{id}/songs``."""
        return {
            "title": self.title,
            "artist": self.artist,
            "url": self.url,
            "image_url": self.artwork,
            "duration": self.duration,
            "source": self.source,
        }


class PlaylistUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    tracks: list[Track] | None = None
