from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.database import get_db
from conduit.dependencies import PaginationParams, get_viewer_id, require_viewer_id
from conduit.schemas import (
    ArticleResponse,
    ArticlesResponse,
    NewArticleRequest,
    UpdateArticleRequest,
)
from conduit.services import article_service

router = APIRouter(prefix="/api/articles", tags=["articles"])


@router.get("", response_model=ArticlesResponse)
async def list_articles(
    tag: str | None = Query(None, description="Only articles carrying this tag."),
    author: str | None = Query(None, description="Only articles by this username."),
    favorited: str | None = Query(None, description="Only articles favorited by this username."),
    pagination: PaginationParams = Depends(),
    viewer_id: int | None = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.list_articles(
        db,
        viewer_id,
        tag=tag,
        author=author,
        favorited=favorited,
        limit=pagination.limit,
        offset=pagination.offset,
    )


# Declared before "/{slug}" so "feed" is not captured as a slug.
@router.get("/feed", response_model=ArticlesResponse)
async def feed_articles(
    pagination: PaginationParams = Depends(),
    viewer_id: int = Depends(require_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.feed_articles(
        db, viewer_id, limit=pagination.limit, offset=pagination.offset
    )


@router.get("/{slug}", response_model=ArticleResponse)
async def get_article(
    slug: str,
    viewer_id: int | None = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return {"article": await article_service.get_article(db, slug, viewer_id)}


@router.post("", status_code=201, response_model=ArticleResponse)
async def create_article(
    payload: NewArticleRequest,
    viewer_id: int = Depends(require_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return {"article": await article_service.create_article(db, viewer_id, payload.article)}


@router.put("/{slug}", response_model=ArticleResponse)
async def update_article(
    slug: str,
    payload: UpdateArticleRequest,
    viewer_id: int = Depends(require_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return {
        "article": await article_service.update_article(db, slug, viewer_id, payload.article)
    }


@router.delete("/{slug}", status_code=204)
async def delete_article(
    slug: str,
    viewer_id: int = Depends(require_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    await article_service.delete_article(db, slug, viewer_id)


@router.post("/{slug}/favorite", response_model=ArticleResponse)
async def favorite_article(
    slug: str,
    viewer_id: int = Depends(require_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return {"article": await article_service.favorite_article(db, slug, viewer_id)}


@router.delete("/{slug}/favorite", response_model=ArticleResponse)
async def unfavorite_article(
    slug: str,
    viewer_id: int = Depends(require_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return {"article": await article_service.unfavorite_article(db, slug, viewer_id)}
