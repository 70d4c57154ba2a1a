"""Pydantic schemas for viewer identity."""

from pydantic import BaseModel, ConfigDict

from page_comments.comments.models import Viewer


class ViewerResponse(BaseModel):
    """The current viewer as the comments widget needs it."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    display_name: str
    email: str
    profile_picture_url: str
    is_admin: bool = False

    @classmethod
    def from_viewer(cls, viewer: Viewer, is_admin: bool) -> "ViewerResponse":
        return cls(
            id=viewer.id,
            display_name=viewer.display_name,
            email=viewer.email,
            profile_picture_url=viewer.profile_picture_url,
            is_admin=is_admin,
        )
