from examples.blog_app import (
    Author,
    Post,
    add_comments,
    bootstrap_session,
    run_demo,
    seed_sample_data,
)


def test_blog_example_bootstrap_and_seed(tmp_path):
    db_path = tmp_path / "blog_example.db"
    session = bootstrap_session(dsn=f"sqlite:///{db_path}")
    try:
        seeded = seed_sample_data(session)
        assert isinstance(seeded["author"], Author)
        assert isinstance(seeded["post"], Post)
        assert seeded["post"].author == seeded["author"].pk
        assert seeded["post"].commented_at is None
    finally:
        session.close()


def test_adding_comments_touches_post_and_author_once(tmp_path):
    session = bootstrap_session(dsn=f"sqlite:///{tmp_path / 'comments.db'}")
    try:
        seeded = seed_sample_data(session)
        post = seeded["post"]
        executed = []
        original_execute = session.adapter.execute

        def recording_execute(sql, params=None):
            executed.append(sql)
            return original_execute(sql, params)

        session.adapter.execute = recording_execute
        comments = add_comments(session, post, ["one", "two", "three"])

        updates = [sql for sql in executed if sql.startswith("UPDATE")]
        assert len(comments) == 3
        assert updates == [
            'UPDATE "post" SET "updated_at" = ?, "commented_at" = ? WHERE "id" = ?',
            'UPDATE "author" SET "updated_at" = ? WHERE "id" = ?',
        ]
        assert post.commented_at == post.updated_at
    finally:
        session.close()


def test_run_demo_returns_feed():
    feed = run_demo()
    assert feed
    assert all(entry["commented_at"] is not None for entry in feed)
    assert all(entry["commented_at"] == entry["updated_at"] for entry in feed)
