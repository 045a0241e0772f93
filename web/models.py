"""API request/response models for the file manager"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from filedeck.models.user import Identity


class StrictRequest(BaseModel):
    """Request bodies reject unknown fields"""

    model_config = ConfigDict(extra="forbid")


class LoginRequest(StrictRequest):
    username: StrictStr = ""
    password: StrictStr = ""


class ChangePasswordRequest(StrictRequest):
    current_password: StrictStr = Field(default="", alias="currentPassword")
    new_password: StrictStr = Field(default="", alias="newPassword")


class PathRequest(StrictRequest):
    path: StrictStr = ""


class CreateEntryRequest(StrictRequest):
    """Create a file or folder called `name` inside directory `path`"""
    path: StrictStr = ""
    name: StrictStr = ""


class RenameRequest(StrictRequest):
    path: StrictStr = ""
    new_name: StrictStr = Field(default="", alias="newName")


class WriteFileRequest(StrictRequest):
    path: StrictStr = ""
    content: StrictStr


class OkResponse(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    error: str


class SessionResponse(BaseModel):
    user: Optional[Identity] = None


class FileEntry(BaseModel):
    """One child of a listed directory"""
    name: str
    type: Literal["dir", "file"]
    size: Optional[int] = None  # None for directories
    mtime: str


class ListResponse(BaseModel):
    path: str
    entries: List[FileEntry] = Field(default_factory=list)


class FileContentResponse(BaseModel):
    content: str
