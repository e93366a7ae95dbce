import structlog
from fastapi import BackgroundTasks, FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from typing import Optional, List

from accounts import CredentialStore, SessionIssuer, make_password_context
from config import Settings
from database import Database
from errors import InvalidToken, NotFoundError, ServiceError
from guidelines import GuidelineBoard, PublishPredicate, publishers_from_emails
from logging_setup import configure_logging
from notifications import WelcomeMailer
from questions import QuestionBoard

logger = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=False)


# Schemas for requests
# Required fields are optional here so the boards can answer 400 with their own message

class SignupRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

class QuestionCreate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[List[str]] = None
    author: Optional[str] = None
    topic: Optional[str] = None

class ReplyCreate(BaseModel):
    text: Optional[str] = None
    author: Optional[str] = None

class GuidelineCreate(BaseModel):
    email: Optional[str] = None
    title: Optional[str] = None
    content: Optional[str] = None
    image: Optional[str] = None

class LikeRequest(BaseModel):
    email: Optional[str] = None


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    mailer=None,
    can_publish: Optional[PublishPredicate] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(level=settings.log_level)

    database = database or Database.from_settings(settings)
    mailer = mailer if mailer is not None else WelcomeMailer(settings)
    can_publish = can_publish or publishers_from_emails(settings.moderator_emails)

    credentials = CredentialStore(database, make_password_context(settings.effective_bcrypt_rounds), mailer)
    sessions = SessionIssuer.from_settings(settings)
    questions = QuestionBoard(database)
    guidelines = GuidelineBoard(database, can_publish)

    app = FastAPI(title="Alphaingen API")
    app.state.settings = settings
    app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def open_database():
        database.startup()

    @app.on_event("shutdown")
    def close_database():
        database.close()

    # Error handlers

    @app.exception_handler(ServiceError)
    def service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info("invalid request body", path=request.url.path, errors=len(exc.errors()))
        return JSONResponse(status_code=400, content={"message": "Invalid request"})

    @app.exception_handler(Exception)
    def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled error", path=request.url.path)
        return JSONResponse(status_code=500, content={"message": "Internal Server Error"})

    def current_user(token: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> dict:
        if token is None:
            raise InvalidToken()
        user_id = sessions.verify(token.credentials)
        try:
            return credentials.get(user_id)
        except NotFoundError:
            raise InvalidToken()

    @app.get("/")
    def read_root():
        return {"message": "Alphaingen Server Running..."}

    @app.get("/test")
    def test_database():
        response = {
            "backend": "Running",
            "database": "Not Available",
            "database_name": database.name,
            "collections": [],
        }
        try:
            response["collections"] = database.db.list_collection_names()[:10]
            response["database"] = "Connected & Working"
        except Exception as e:
            response["database"] = f"Error: {str(e)[:50]}"
        return response

    # Accounts

    @app.post("/signup")
    def signup(payload: SignupRequest, background_tasks: BackgroundTasks):
        credentials.register(
            payload.username,
            payload.email,
            payload.password,
            schedule=background_tasks.add_task,
        )
        return {
            "statusCode": 200,
            "message": "Registered successfully. Check your email for login link.",
        }

    @app.post("/login")
    def login(payload: LoginRequest):
        user = credentials.authenticate(payload.email, payload.password)
        return {
            "alpha": sessions.issue(user["_id"]),
            "message": "Successfully Logged In",
            "_id": str(user["_id"]),
            "username": user.get("username"),
        }

    @app.get("/me")
    def me(user: dict = Depends(current_user)):
        return {"_id": str(user["_id"]), "username": user.get("username"), "email": user["email"]}

    # Questions

    @app.post("/questions", status_code=201)
    def create_question(payload: QuestionCreate):
        question = questions.post(
            payload.title,
            payload.content,
            tags=payload.tags,
            author=payload.author,
            topic=payload.topic,
        )
        return {"message": "Question posted successfully", "question": question}

    @app.get("/questions")
    def list_questions():
        return questions.list()

    @app.post("/questions/{question_id}/reply", status_code=201)
    @app.post("/questions/{question_id}/replies", status_code=201)
    def post_reply(question_id: str, payload: ReplyCreate):
        reply = questions.add_reply(question_id, payload.text, author=payload.author)
        return {"message": "Reply added successfully", "reply": reply}

    @app.put("/questions/{question_id}/reply")
    @app.put("/questions/{question_id}/replies")
    def put_reply(question_id: str, payload: ReplyCreate):
        reply = questions.add_reply(question_id, payload.text, author=payload.author)
        return {"message": "Reply added successfully", "reply": reply}

    # Guidelines

    @app.post("/guidelines", status_code=201)
    def create_guideline(payload: GuidelineCreate):
        guideline = guidelines.post(payload.email, payload.title, payload.content, image=payload.image)
        return {"message": "Guideline posted successfully", "guideline": guideline}

    @app.get("/guidelines")
    def list_guidelines():
        return guidelines.list()

    @app.put("/guidelines/{guideline_id}/like")
    def like_guideline(guideline_id: str, payload: LikeRequest):
        guideline = guidelines.like(guideline_id, payload.email)
        return {"message": "Guideline liked", "likeCount": guideline["likeCount"]}

    return app


# Served with: uvicorn main:create_app --factory
if __name__ == "__main__":
    import uvicorn
    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
