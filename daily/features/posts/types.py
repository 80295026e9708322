from typing import Optional

from pydantic import field_validator

from daily.core import config
from daily.core.database.models import PostVisibility
from daily.core.types import Base
from daily.features.posts.entities import Location, Post


class CreatePostRequest(Base):
    front_image: str
    back_image: str
    caption: str = ""
    visibility: PostVisibility = PostVisibility.public
    location: Optional[Location] = None

    @field_validator("front_image", "back_image")
    @classmethod
    def validate_image(cls, image: str) -> str:
        if not image.strip():
            raise ValueError("Image is required")
        return image

    @field_validator("caption")
    @classmethod
    def validate_caption(cls, caption: str) -> str:
        caption = caption.strip()
        if len(caption) > config.MAX_CAPTION_LENGTH:
            raise ValueError(f"Caption too long (max length {config.MAX_CAPTION_LENGTH} chars)")
        return caption


class CreateCommentRequest(Base):
    text: str

    @field_validator("text")
    @classmethod
    def validate_text(cls, text: str) -> str:
        text = text.strip()
        if len(text) == 0 or len(text) > config.MAX_COMMENT_LENGTH:
            raise ValueError("Invalid comment")
        return text


class PostList(Base):
    posts: list[Post]


class LikePostResponse(Base):
    likes: int
    liked: bool


class SharePostResponse(Base):
    shares: int
    shared: bool
