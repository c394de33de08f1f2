"""Database seeder for local development of the blog."""
import argparse
import asyncio
import random
import time
from datetime import datetime, timedelta, timezone

from blog.database import Base, async_session, engine
from blog.models import Address, Article, Category, Keyword, User

CATEGORIES = ["Programming", "DevOps", "Databases", "Career", "Tooling"]

KEYWORDS = ["python", "fastapi", "postgresql", "redis", "docker", "kubernetes",
            "php", "laravel", "rust", "testing", "performance", "security"]

ROLES = ["owner", "admin", "author", "author", "author"]


async def seed(small: bool = False):
    num_users = 10 if small else 50
    num_articles = 100 if small else 5000

    print(f"Seeding: {num_users} users, {num_articles} articles")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        categories = [Category(name=name, is_active=True) for name in CATEGORIES]
        keywords = [Keyword(name=name, is_active=True) for name in KEYWORDS]
        session.add_all(categories + keywords)
        await session.flush()
        print(f"  Created {len(categories)} categories, {len(keywords)} keywords")

        users = []
        for i in range(num_users):
            user = User(
                name=f"User {i}",
                email=f"user_{i:04d}@example.com",
                role=ROLES[i] if i < len(ROLES) else random.choice(["author", "subscriber"]),
                is_subscribed=random.random() > 0.5,
            )
            session.add(user)
            users.append(user)
        await session.flush()
        authors = [u for u in users if u.role != "subscriber"]
        print(f"  Created {len(users)} users ({len(authors)} can write)")

        batch_size = 500
        for batch_start in range(0, num_articles, batch_size):
            batch_end = min(batch_start + batch_size, num_articles)
            for i in range(batch_start, batch_end):
                created = datetime.now(timezone.utc) - timedelta(days=random.randint(0, 365))
                topic = random.choice(KEYWORDS)
                address = Address(ip=f"10.0.{random.randint(0, 255)}.{random.randint(1, 254)}")
                article = Article(
                    heading=f"Article {i}: notes on {topic}",
                    content=f"This is the full content of article {i} about {topic}. " * 20,
                    language=random.choice(["en", "en", "de"]),
                    is_comment_enabled=random.random() > 0.2,
                    is_deleted=random.random() < 0.05,
                    published_at=created if random.random() > 0.1 else None,
                    created_at=created,
                    author=random.choice(authors),
                    category=random.choice(categories),
                    address=address,
                )
                article.keywords.extend(random.sample(keywords, k=random.randint(1, 4)))
                session.add(article)
            await session.flush()
            print(f"  Batch {batch_start}-{batch_end}: articles created")

        await session.commit()

    print(f"\nSeeding complete in {time.perf_counter() - start:.1f}s")


def main():
    parser = argparse.ArgumentParser(description="Seed the blog database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 articles)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
