"""Tests for resonansi.services.comments: authorship, like toggling, edit/delete rules."""

import unittest
from unittest.mock import patch

from sqlalchemy.orm import Session, sessionmaker

from resonansi.core.database import create_db_engine
from resonansi.core.errors import ForbiddenError, NotFoundError, ValidationError
from resonansi.models import Base, Comment, CommentLike, Post, User
from resonansi.schemas.auth import AuthenticatedContext
from resonansi.services import comments as comment_service


def _session() -> Session:
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False)()


class CommentsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _session()
        self.alice = self._user("alice")
        self.bob = self._user("bob")
        self.post = Post(
            title="Hello World",
            slug="hello-world",
            content="x" * 40,
            category="sosial",
            image="https://img.example.com/p.png",
            author_id=self.alice.id,
        )
        self.db.add(self.post)
        self.db.commit()
        self.alice_ctx = AuthenticatedContext(user_id=self.alice.id, role="user")
        self.bob_ctx = AuthenticatedContext(user_id=self.bob.id, role="user")

    def tearDown(self) -> None:
        self.db.close()

    def _user(self, username: str) -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            profile_picture=f"https://img.example.com/{username}.png",
            role="user",
            auth_provider="local",
            is_active=True,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user


class TestCreateComment(CommentsTestCase):
    def test_author_is_caller(self) -> None:
        comment = comment_service.create_comment(self.db, self.bob_ctx, "Mantap", self.post.id)
        self.assertEqual(comment.user_id, self.bob.id)
        self.assertEqual(comment.number_of_likes, 0)

    def test_empty_content_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            comment_service.create_comment(self.db, self.bob_ctx, "   ", self.post.id)

    def test_unknown_post(self) -> None:
        with self.assertRaises(NotFoundError):
            comment_service.create_comment(self.db, self.bob_ctx, "Halo", 999)


class TestListComments(CommentsTestCase):
    def test_newest_first_with_author(self) -> None:
        first = comment_service.create_comment(self.db, self.alice_ctx, "Pertama", self.post.id)
        second = comment_service.create_comment(self.db, self.bob_ctx, "Kedua", self.post.id)
        rows = comment_service.list_post_comments(self.db, "hello-world")
        self.assertEqual([c.id for c, _ in rows], [second.id, first.id])
        out = comment_service.to_comment_out(self.db, *rows[0])
        self.assertEqual(out.author.username, "bob")

    def test_unknown_slug(self) -> None:
        with self.assertRaises(NotFoundError):
            comment_service.list_post_comments(self.db, "no-such-post")


class TestToggleLike(CommentsTestCase):
    def test_like_then_unlike(self) -> None:
        comment = comment_service.create_comment(self.db, self.alice_ctx, "Halo", self.post.id)
        liked = comment_service.toggle_like(self.db, self.bob_ctx, comment.id)
        self.assertEqual(liked.number_of_likes, 1)
        self.assertEqual(comment_service.to_comment_out(self.db, liked).likes, [self.bob.id])

        unliked = comment_service.toggle_like(self.db, self.bob_ctx, comment.id)
        self.assertEqual(unliked.number_of_likes, 0)
        self.assertEqual(self.db.query(CommentLike).count(), 0)

    def test_likes_from_two_users(self) -> None:
        comment = comment_service.create_comment(self.db, self.alice_ctx, "Halo", self.post.id)
        comment_service.toggle_like(self.db, self.alice_ctx, comment.id)
        result = comment_service.toggle_like(self.db, self.bob_ctx, comment.id)
        self.assertEqual(result.number_of_likes, 2)

    def test_concurrent_like_is_already_liked(self) -> None:
        comment = comment_service.create_comment(self.db, self.alice_ctx, "Halo", self.post.id)
        # Another request records Bob's like after this one checked for it.
        other = sessionmaker(bind=self.db.get_bind())()
        other.add(CommentLike(comment_id=comment.id, user_id=self.bob.id))
        other.query(Comment).filter(Comment.id == comment.id).update(
            {Comment.number_of_likes: 1}, synchronize_session=False
        )
        other.commit()
        other.close()

        with patch.object(comment_service, "_find_like", return_value=None):
            result = comment_service.toggle_like(self.db, self.bob_ctx, comment.id)
        self.assertEqual(result.number_of_likes, 1)
        self.assertEqual(self.db.query(CommentLike).count(), 1)

    def test_unlike_never_goes_negative(self) -> None:
        comment = comment_service.create_comment(self.db, self.alice_ctx, "Halo", self.post.id)
        self.db.add(CommentLike(comment_id=comment.id, user_id=self.bob.id))
        self.db.commit()
        result = comment_service.toggle_like(self.db, self.bob_ctx, comment.id)
        self.assertEqual(result.number_of_likes, 0)
        self.assertEqual(self.db.query(CommentLike).count(), 0)


class TestEditDelete(CommentsTestCase):
    def test_only_author_or_admin_edits(self) -> None:
        comment = comment_service.create_comment(self.db, self.alice_ctx, "Halo", self.post.id)
        with self.assertRaises(ForbiddenError):
            comment_service.edit_comment(self.db, self.bob_ctx, comment.id, "Diubah")
        admin = AuthenticatedContext(user_id=12345, role="admin")
        self.assertEqual(
            comment_service.edit_comment(self.db, admin, comment.id, "Diubah").content, "Diubah"
        )

    def test_delete_removes_likes(self) -> None:
        comment = comment_service.create_comment(self.db, self.alice_ctx, "Halo", self.post.id)
        comment_service.toggle_like(self.db, self.bob_ctx, comment.id)
        comment_id = comment.id
        with self.assertRaises(ForbiddenError):
            comment_service.delete_comment(self.db, self.bob_ctx, comment_id)
        comment_service.delete_comment(self.db, self.alice_ctx, comment_id)
        self.assertEqual(self.db.query(CommentLike).count(), 0)
        with self.assertRaises(NotFoundError):
            comment_service.get_comment(self.db, comment_id)


if __name__ == "__main__":
    unittest.main()
