"""Tests for resonansi.services.posts: slugs, validation, listing and ownership."""

import unittest

from sqlalchemy.orm import Session, sessionmaker

from resonansi.core.database import create_db_engine
from resonansi.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from resonansi.models import Base, Comment, CommentLike, Post, User
from resonansi.schemas.auth import AuthenticatedContext
from resonansi.schemas.post import PostCreateRequest, PostQuery, PostUpdateRequest
from resonansi.services import posts as post_service

CONTENT = "Isi tulisan yang cukup panjang untuk lolos validasi."


def _session() -> Session:
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False)()


def _body(title: str = "Hello World", category: str = "sosial") -> PostCreateRequest:
    return PostCreateRequest(
        title=title,
        content=CONTENT,
        category=category,
        image="https://img.example.com/cover.png",
    )


class TestSlugify(unittest.TestCase):
    def test_basic(self) -> None:
        self.assertEqual(post_service.slugify("Hello World"), "hello-world")

    def test_punctuation_dropped_and_spaces_collapsed(self) -> None:
        self.assertEqual(post_service.slugify("  Apa   kabar, Dunia?! "), "apa-kabar-dunia")


class PostsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _session()
        self.admin = self._user("admin1", "admin")
        self.author = self._user("author1", "user")
        self.other = self._user("other1", "user")
        self.admin_ctx = AuthenticatedContext(user_id=self.admin.id, role="admin")
        self.author_ctx = AuthenticatedContext(user_id=self.author.id, role="user")
        self.other_ctx = AuthenticatedContext(user_id=self.other.id, role="user")

    def tearDown(self) -> None:
        self.db.close()

    def _user(self, username: str, role: str) -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            profile_picture="",
            role=role,
            auth_provider="local",
            is_active=True,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user


class TestCreatePost(PostsTestCase):
    def test_create_sets_slug_and_author(self) -> None:
        post = post_service.create_post(self.db, self.author_ctx, _body())
        self.assertEqual(post.slug, "hello-world")
        self.assertEqual(post.author_id, self.author.id)

    def test_duplicate_slug_is_conflict(self) -> None:
        post_service.create_post(self.db, self.author_ctx, _body("Hello World"))
        with self.assertRaises(ConflictError):
            post_service.create_post(self.db, self.author_ctx, _body("hello, world!"))

    def test_unknown_category_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            post_service.create_post(self.db, self.author_ctx, _body(category="olahraga"))

    def test_short_title_and_content_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            post_service.create_post(self.db, self.author_ctx, _body(title="Hi"))
        body = _body()
        body.content = "too short"
        with self.assertRaises(ValidationError):
            post_service.create_post(self.db, self.author_ctx, body)


class TestListPosts(PostsTestCase):
    def setUp(self) -> None:
        super().setUp()
        post_service.create_post(self.db, self.author_ctx, _body("Pendidikan untuk semua", "pendidikan"))
        post_service.create_post(self.db, self.author_ctx, _body("Ekonomi rakyat kecil", "ekonomi"))
        post_service.create_post(self.db, self.admin_ctx, _body("Politik hari ini", "politik"))

    def test_filters_by_category(self) -> None:
        posts, total, last_month = post_service.list_posts(self.db, PostQuery(category="ekonomi"))
        self.assertEqual([p.category for p in posts], ["ekonomi"])
        self.assertEqual(total, 3)
        self.assertEqual(last_month, 3)

    def test_filters_by_author(self) -> None:
        posts, _, _ = post_service.list_posts(self.db, PostQuery(user_id=self.admin.id))
        self.assertEqual(len(posts), 1)

    def test_search_term_matches_title(self) -> None:
        posts, _, _ = post_service.list_posts(self.db, PostQuery(search_term="rakyat"))
        self.assertEqual([p.slug for p in posts], ["ekonomi-rakyat-kecil"])

    def test_search_wildcards_match_literally(self) -> None:
        post_service.create_post(self.db, self.author_ctx, _body("Diskon 50% hari ini"))
        post_service.create_post(self.db, self.author_ctx, _body("Diskon 500 hari ini"))
        post_service.create_post(self.db, self.author_ctx, _body("Kode_a untuk promo"))
        post_service.create_post(self.db, self.author_ctx, _body("Kodeba untuk promo"))

        posts, _, _ = post_service.list_posts(self.db, PostQuery(search_term="50%"))
        self.assertEqual([p.slug for p in posts], ["diskon-50-hari-ini"])
        posts, _, _ = post_service.list_posts(self.db, PostQuery(search_term="e_a"))
        self.assertEqual([p.slug for p in posts], ["kodea-untuk-promo"])
        posts, _, _ = post_service.list_posts(self.db, PostQuery(search_term="%"))
        self.assertEqual([p.slug for p in posts], ["diskon-50-hari-ini"])

    def test_paging(self) -> None:
        posts, _, _ = post_service.list_posts(self.db, PostQuery(start_index=1, limit=1))
        self.assertEqual(len(posts), 1)


class TestPostOwnership(PostsTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.post = post_service.create_post(self.db, self.author_ctx, _body())

    def test_author_can_update_and_slug_follows_title(self) -> None:
        updated = post_service.update_post(
            self.db, self.author_ctx, self.post.id, PostUpdateRequest(title="Judul Baru Sekali")
        )
        self.assertEqual(updated.slug, "judul-baru-sekali")

    def test_other_user_cannot_update_or_delete(self) -> None:
        with self.assertRaises(ForbiddenError):
            post_service.update_post(
                self.db, self.other_ctx, self.post.id, PostUpdateRequest(category="politik")
            )
        with self.assertRaises(ForbiddenError):
            post_service.delete_post(self.db, self.other_ctx, self.post.id)

    def test_admin_can_delete_with_comments(self) -> None:
        comment = Comment(content="ok", post_id=self.post.id, user_id=self.other.id, number_of_likes=1)
        self.db.add(comment)
        self.db.commit()
        self.db.add(CommentLike(comment_id=comment.id, user_id=self.other.id))
        self.db.commit()
        post_id = self.post.id
        post_service.delete_post(self.db, self.admin_ctx, post_id)
        self.assertIsNone(self.db.get(Post, post_id))
        self.assertEqual(self.db.query(Comment).count(), 0)
        self.assertEqual(self.db.query(CommentLike).count(), 0)
        with self.assertRaises(NotFoundError):
            post_service.get_post(self.db, post_id)


if __name__ == "__main__":
    unittest.main()
