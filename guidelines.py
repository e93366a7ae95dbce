"""
Guideline board

Moderators publish guidelines; any member can like each guideline once.
Who counts as a moderator is decided by the predicate passed in at
construction, see publishers_from_emails() for the configured default.
"""

from typing import Callable, Iterable, Optional

import structlog
from pymongo import ReturnDocument

from database import Database, GUIDELINES, serialize, store_errors, to_object_id
from errors import AlreadyLiked, MissingField, NotAuthorized, NotFoundError
from schemas import DEFAULT_GUIDELINE_IMAGE, Guideline, is_blank

logger = structlog.get_logger()

PublishPredicate = Callable[[Optional[str]], bool]


def publishers_from_emails(emails: Iterable[str]) -> PublishPredicate:
    allowed = frozenset(emails)

    def can_publish_guidelines(email: Optional[str]) -> bool:
        return bool(email) and email in allowed

    return can_publish_guidelines


class GuidelineBoard:
    def __init__(self, db: Database, can_publish: PublishPredicate):
        self.db = db
        self.can_publish = can_publish

    def post(
        self,
        author_email: Optional[str],
        title: Optional[str],
        content: Optional[str],
        image: Optional[str] = None,
    ) -> dict:
        if not self.can_publish(author_email):
            logger.warning("guideline rejected", email=author_email)
            raise NotAuthorized()
        if is_blank(title) or is_blank(content):
            raise MissingField("title", "content")

        guideline = Guideline(title=title, content=content, image=image or DEFAULT_GUIDELINE_IMAGE)
        doc = self.db.create_document(GUIDELINES, guideline)
        logger.info("guideline posted", guideline_id=str(doc["_id"]))
        return serialize(doc)

    def list(self) -> list:
        return [serialize(d) for d in self.db.get_documents(GUIDELINES)]

    def like(self, guideline_id: str, email: Optional[str]) -> dict:
        """
        Record one like from email.

        The membership check, the insert into likedBy and the counter
        increment are a single conditional update, so two racing likes from
        the same email cannot both match and likeCount always equals
        len(likedBy).
        """
        oid = to_object_id(guideline_id)
        if not email:
            raise MissingField("email")

        collection = self.db[GUIDELINES]
        with store_errors("like guideline"):
            doc = collection.find_one_and_update(
                {"_id": oid, "likedBy": {"$ne": email}},
                {"$addToSet": {"likedBy": email}, "$inc": {"likeCount": 1}},
                return_document=ReturnDocument.AFTER,
            )
            # Nothing matched: the guideline is missing or email already liked it
            exists = doc is not None or collection.find_one({"_id": oid}, {"_id": 1}) is not None

        if not exists:
            raise NotFoundError("Guideline not found")
        if doc is None:
            raise AlreadyLiked()

        logger.info("guideline liked", guideline_id=guideline_id, like_count=doc["likeCount"])
        return serialize(doc)
