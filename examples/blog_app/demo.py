"""
Utility helpers for running the touchorm blog example end-to-end.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from touchorm.adapters import ConnectionConfig, SQLiteAdapter
from touchorm.persistence import Session
from touchorm.schema import SchemaBuilder

from .models import Author, Comment, Post


def bootstrap_session(dsn: str = "sqlite:///:memory:") -> Session:
    """
    Create a SQLite-backed session and ensure the blog schema exists.
    """

    adapter = SQLiteAdapter()
    session = Session(adapter, connection_config=ConnectionConfig(url=dsn))
    builder = SchemaBuilder(session.dialect)
    with session.transaction():
        for statement in builder.create_all_sql([Author, Post, Comment]):
            session.execute(statement)
    return session


def seed_sample_data(session: Session) -> Dict[str, Any]:
    author = Author(name="Alice Carter")
    with session.transaction():
        session.add(author)
        session.flush()
        post = Post(title="Introducing deferred touches", author=author)
        session.add(post)
    return {"author": author, "post": post}


def add_comments(session: Session, post: Post, bodies: Iterable[str]) -> List[Comment]:
    """
    Add several comments at once.

    Every comment touches its post, and the post touches its author, but
    inside ``deferred_touch`` each of them is updated only once.
    """

    comments = [Comment(body=body, post=post) for body in bodies]
    with session.deferred_touch():
        with session.transaction():
            for comment in comments:
                session.add(comment)
    return comments


def run_demo() -> List[Dict[str, Any]]:
    session = bootstrap_session()
    try:
        seeded = seed_sample_data(session)
        post = seeded["post"]
        add_comments(session, post, ["First!", "Great write-up.", "Thanks for sharing."])
        return [
            {
                "title": post.title,
                "author": seeded["author"].name,
                "commented_at": post.commented_at,
                "updated_at": post.updated_at,
            }
        ]
    finally:
        session.close()
