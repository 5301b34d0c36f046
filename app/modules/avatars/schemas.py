from pydantic import BaseModel


class AvatarResponse(BaseModel):
    avatar_url: str
    file_name: str


class AvatarDeleteResponse(BaseModel):
    message: str
    removed_files: int
