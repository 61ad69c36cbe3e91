"""Populate a development database with users, follows, articles, favorites and comments."""
import argparse
import asyncio
import random
import time
from datetime import datetime, timedelta, timezone

from conduit.database import Base, async_session, engine
from conduit.models import Article, Comment, Favorite, Follow, Tag, User, articles_to_tags
from conduit.security import hash_password

TAGS = ["python", "fastapi", "postgresql", "redis", "docker", "kubernetes",
        "react", "typescript", "aws", "devops", "testing", "performance",
        "security", "microservices", "graphql", "rest-api"]

# Every seeded account shares this password.
PASSWORD = "password123"


async def seed(small: bool = False, seed_value: int = 42):
    random.seed(seed_value)
    num_users = 10 if small else 50
    num_articles = 100 if small else 5000
    max_comments = 2 if small else 5

    print(f"Seeding: {num_users} users, {num_articles} articles")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        tags = [Tag(name=name) for name in TAGS]
        session.add_all(tags)

        # One hash for everyone keeps seeding fast.
        password_hash = hash_password(PASSWORD)
        users = [
            User(
                username=f"user_{i:04d}",
                email=f"user_{i:04d}@example.com",
                password_hash=password_hash,
                bio=f"I am test user number {i}. I write about technology.",
            )
            for i in range(num_users)
        ]
        session.add_all(users)
        await session.flush()
        print(f"  Created {len(tags)} tags and {len(users)} users")

        follows = 0
        for user in users:
            for other in random.sample(users, k=min(5, num_users)):
                if other.id != user.id:
                    session.add(Follow(follower_id=user.id, followed_id=other.id))
                    follows += 1
        await session.flush()

        total_comments = 0
        total_favorites = 0
        batch_size = 500
        for batch_start in range(0, num_articles, batch_size):
            batch = []
            for i in range(batch_start, min(batch_start + batch_size, num_articles)):
                created = datetime.now(timezone.utc) - timedelta(minutes=random.randint(0, 525600))
                topic = random.choice(TAGS)
                batch.append(Article(
                    slug=f"article-{i}-optimizing-{topic}",
                    title=f"Article {i}: Optimizing {topic}",
                    description=f"A guide to running {topic} in production.",
                    body=f"This is the full body of article {i}. " * 20,
                    author_id=random.choice(users).id,
                    created_at=created,
                    updated_at=created,
                ))
            session.add_all(batch)
            await session.flush()

            links = []
            for article in batch:
                for tag in random.sample(tags, k=random.randint(1, 4)):
                    links.append({"article_id": article.id, "tag_id": tag.id})
                for user in random.sample(users, k=random.randint(0, 3)):
                    session.add(Favorite(user_id=user.id, article_id=article.id))
                    total_favorites += 1
                for _ in range(random.randint(0, max_comments)):
                    session.add(Comment(
                        body="Great article! Very helpful for understanding the topic.",
                        article_id=article.id,
                        author_id=random.choice(users).id,
                    ))
                    total_comments += 1
            await session.execute(articles_to_tags.insert().values(links))
            await session.flush()
            print(f"  Batch {batch_start}-{batch_start + len(batch)}: articles created")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users} (password: {PASSWORD})")
    print(f"  Follows: {follows}")
    print(f"  Articles: {num_articles}")
    print(f"  Favorites: {total_favorites}")
    print(f"  Comments: {total_comments}")


def main():
    parser = argparse.ArgumentParser(description="Seed the Conduit database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 articles)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small, seed_value=args.seed))


if __name__ == "__main__":
    main()
