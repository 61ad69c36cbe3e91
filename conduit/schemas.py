from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Python attributes in snake_case, wire format in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Profile ---

class ProfileView(CamelModel):
    username: str
    bio: str | None = None
    image: str | None = None
    following: bool = False


class ProfileResponse(CamelModel):
    profile: ProfileView


# --- User ---

class NewUser(CamelModel):
    username: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=8, max_length=100)


class NewUserRequest(CamelModel):
    user: NewUser


class LoginUser(CamelModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginUserRequest(CamelModel):
    user: LoginUser


class UpdateUser(CamelModel):
    username: str | None = Field(None, min_length=1, max_length=100)
    email: str | None = Field(None, min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str | None = Field(None, min_length=8, max_length=100)
    bio: str | None = None
    image: str | None = Field(None, max_length=500)


class UpdateUserRequest(CamelModel):
    user: UpdateUser


class UserView(CamelModel):
    email: str
    token: str
    username: str
    bio: str | None = None
    image: str | None = None


class UserResponse(CamelModel):
    user: UserView


# --- Article ---

class NewArticle(CamelModel):
    title: str = Field(min_length=1, max_length=300)
    description: str = Field(min_length=1)
    body: str = Field(min_length=1)
    tag_list: list[str] | None = None


class NewArticleRequest(CamelModel):
    article: NewArticle


class UpdateArticle(CamelModel):
    title: str | None = Field(None, min_length=1, max_length=300)
    description: str | None = Field(None, min_length=1)
    body: str | None = Field(None, min_length=1)
    # None (absent) leaves the tags alone; [] removes them all.
    tag_list: list[str] | None = None


class UpdateArticleRequest(CamelModel):
    article: UpdateArticle


class ArticleListItem(CamelModel):
    slug: str
    title: str
    description: str
    tag_list: list[str] = []
    created_at: str
    updated_at: str
    favorited: bool = False
    favorites_count: int = 0
    author: ProfileView


class ArticleView(ArticleListItem):
    body: str


class ArticleResponse(CamelModel):
    article: ArticleView


class ArticlesResponse(CamelModel):
    articles: list[ArticleListItem]
    articles_count: int


# --- Comment ---

class NewComment(CamelModel):
    body: str = Field(min_length=1)


class NewCommentRequest(CamelModel):
    comment: NewComment


class CommentView(CamelModel):
    id: int
    created_at: str
    updated_at: str
    body: str
    author: ProfileView


class CommentResponse(CamelModel):
    comment: CommentView


class CommentsResponse(CamelModel):
    comments: list[CommentView]


# --- Tag ---

class TagsResponse(CamelModel):
    tags: list[str]


# --- Health ---

class HealthResponse(BaseModel):
    status: str
    version: str
    cache_info: dict = {}
