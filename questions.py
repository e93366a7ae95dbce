"""
Question board: questions with an embedded, append-only reply thread.
"""

from typing import Optional, List

import structlog

from database import Database, QUESTIONS, serialize, store_errors, to_object_id, utcnow
from errors import MissingField, NotFoundError
from schemas import DEFAULT_AUTHOR, DEFAULT_TOPIC, Question, Reply, is_blank

logger = structlog.get_logger()


class QuestionBoard:
    def __init__(self, db: Database):
        self.db = db

    def post(
        self,
        title: Optional[str],
        content: Optional[str],
        tags: Optional[List[str]] = None,
        author: Optional[str] = None,
        topic: Optional[str] = None,
    ) -> dict:
        if is_blank(title) or is_blank(content):
            raise MissingField("title", "content")

        question = Question(
            title=title,
            content=content,
            tags=tags or [],
            author=author or DEFAULT_AUTHOR,
            topic=topic or DEFAULT_TOPIC,
        )
        doc = self.db.create_document(QUESTIONS, question)
        logger.info("question posted", question_id=str(doc["_id"]), topic=doc["topic"])
        return serialize(doc)

    def list(self) -> list:
        return [serialize(d) for d in self.db.get_documents(QUESTIONS)]

    def add_reply(self, question_id: str, text: Optional[str], author: Optional[str] = None) -> dict:
        oid = to_object_id(question_id)
        if is_blank(text):
            # An unknown question answers 404 before the body is judged
            with store_errors("find question"):
                exists = self.db[QUESTIONS].find_one({"_id": oid}, {"_id": 1}) is not None
            if not exists:
                raise NotFoundError("Question not found")
            raise MissingField("text")

        reply = Reply(text=text, author=author or DEFAULT_AUTHOR, createdAt=utcnow())
        # Single $push so concurrent replies to one question never overwrite each other
        with store_errors("push reply"):
            result = self.db[QUESTIONS].update_one(
                {"_id": oid},
                {"$push": {"replies": reply.model_dump()}},
            )
        if result.matched_count == 0:
            raise NotFoundError("Question not found")

        logger.info("reply added", question_id=question_id)
        return serialize(reply.model_dump())
