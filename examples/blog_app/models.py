"""
Data models for the touchorm blog example.
"""

from __future__ import annotations

from touchorm.core import DateTimeField, ForeignKey, Model, StringField


class Author(Model):
    name = StringField(nullable=False, max_length=120)
    updated_at = DateTimeField(auto_now=True)


class Post(Model):
    title = StringField(nullable=False, max_length=200)
    author = ForeignKey(Author, touch=True, db_column="author_id")
    updated_at = DateTimeField(auto_now=True)
    commented_at = DateTimeField()


class Comment(Model):
    body = StringField(nullable=False)
    post = ForeignKey(Post, touch="commented_at", db_column="post_id")
    updated_at = DateTimeField(auto_now=True)
