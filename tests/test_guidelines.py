from __future__ import annotations

import threading

import pytest
from bson import ObjectId

from conftest import MODERATOR
from errors import AlreadyLiked, MissingField, NotAuthorized, NotFoundError
from guidelines import GuidelineBoard, publishers_from_emails
from schemas import DEFAULT_GUIDELINE_IMAGE


def test_only_publishers_can_post(guideline_board):
    for email in ("member@example.com", "MODERATOR@alphaingen.com", "", None):
        with pytest.raises(NotAuthorized):
            guideline_board.post(email, "New E/M rules", "Details")

    g = guideline_board.post(MODERATOR, "New E/M rules", "Details")
    assert g["title"] == "New E/M rules"
    assert g["image"] == DEFAULT_GUIDELINE_IMAGE
    assert g["likeCount"] == 0
    assert g["likedBy"] == []


def test_publish_rule_is_injected(database):
    board = GuidelineBoard(database, lambda email: email.endswith("@staff.alphaingen.com"))

    board.post("lead@staff.alphaingen.com", "t", "c", image="data:image/png;base64,AAAA")
    with pytest.raises(NotAuthorized):
        board.post(MODERATOR, "t", "c")


def test_publishers_from_emails_matches_exactly():
    can_publish = publishers_from_emails(["a@x.com", "b@x.com"])
    assert can_publish("a@x.com")
    assert can_publish("b@x.com")
    assert not can_publish("A@x.com")
    assert not can_publish(None)


def test_post_requires_title_and_content(guideline_board):
    with pytest.raises(MissingField):
        guideline_board.post(MODERATOR, "", "c")


def test_list_is_newest_first(guideline_board):
    for i in range(3):
        guideline_board.post(MODERATOR, f"g{i}", "c")
    assert [g["title"] for g in guideline_board.list()] == ["g2", "g1", "g0"]


def test_like_is_counted_once_per_email(guideline_board):
    g = guideline_board.post(MODERATOR, "t", "c")

    liked = guideline_board.like(g["_id"], "jane@example.com")
    assert liked["likeCount"] == 1
    assert liked["likedBy"] == ["jane@example.com"]

    for _ in range(3):
        with pytest.raises(AlreadyLiked):
            guideline_board.like(g["_id"], "jane@example.com")

    (stored,) = guideline_board.list()
    assert stored["likeCount"] == 1
    assert stored["likedBy"] == ["jane@example.com"]


def test_like_count_tracks_distinct_emails(guideline_board):
    g = guideline_board.post(MODERATOR, "t", "c")
    emails = [f"user{i}@example.com" for i in range(4)]

    for email in emails + emails:
        try:
            guideline_board.like(g["_id"], email)
        except AlreadyLiked:
            pass

    (stored,) = guideline_board.list()
    assert stored["likeCount"] == len(stored["likedBy"]) == 4
    assert sorted(stored["likedBy"]) == emails


def test_like_is_one_conditional_update(recording_db):
    board = GuidelineBoard(recording_db, publishers_from_emails([MODERATOR]))
    g = board.post(MODERATOR, "t", "c")
    recording_db.calls.clear()

    board.like(g["_id"], "jane@example.com")

    assert recording_db.calls == ["find_one_and_update"]


def test_like_unknown_guideline(guideline_board):
    with pytest.raises(NotFoundError):
        guideline_board.like(str(ObjectId()), "jane@example.com")
    with pytest.raises(NotFoundError):
        guideline_board.like("nope", "jane@example.com")


def test_like_requires_email(guideline_board):
    g = guideline_board.post(MODERATOR, "t", "c")
    with pytest.raises(MissingField):
        guideline_board.like(g["_id"], "")


@pytest.mark.parametrize("title,content", [("   ", "c"), ("t", "\n\t"), (None, "c")])
def test_post_rejects_blank_title_or_content(guideline_board, title, content):
    with pytest.raises(MissingField) as exc:
        guideline_board.post(MODERATOR, title, content)
    assert exc.value.message == "Title and content are required"
    assert guideline_board.list() == []


def test_concurrent_likes_from_one_email_count_once(guideline_board):
    g = guideline_board.post(MODERATOR, "t", "c")
    outcomes = []

    def like():
        try:
            guideline_board.like(g["_id"], "jane@example.com")
            outcomes.append("liked")
        except AlreadyLiked:
            outcomes.append("already")

    threads = [threading.Thread(target=like) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("liked") == 1
    assert outcomes.count("already") == 19
    (stored,) = guideline_board.list()
    assert stored["likeCount"] == len(stored["likedBy"]) == 1
