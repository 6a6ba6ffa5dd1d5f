"""
Blog-style sample application showcasing deferred touches.
"""

from .demo import add_comments, bootstrap_session, run_demo, seed_sample_data
from .models import Author, Comment, Post

__all__ = [
    "Author",
    "Comment",
    "Post",
    "add_comments",
    "bootstrap_session",
    "run_demo",
    "seed_sample_data",
]
