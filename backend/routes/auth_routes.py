import logging

from email_validator import EmailNotValidError, validate_email
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.auth.jwt_handler import Identity
from backend.auth.passwords import hash_password, password_problem, verify_password
from backend.database import get_db
from backend.models.user import User

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)

CREDENTIALS_REQUIRED = 'Email and password are required'
EMAIL_ALREADY_REGISTERED = 'Email already registered'
INVALID_CREDENTIALS = 'Invalid email or password'


class SignupRequest(BaseModel):
    email: str | None = None
    password: str | None = None

    @field_validator('email')
    @classmethod
    def validate_email_shape(cls, value: str | None) -> str | None:
        if not value:
            return value
        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError as exc:
            raise ValueError('Please provide a valid email address') from exc
        # Emails are stored exactly as submitted; lookups are case-sensitive.
        return value


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class UserResponse(BaseModel):
    id: int
    email: str

    class Config:
        from_attributes = True


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email).first()


def build_auth_response(user: User, message: str) -> dict:
    token = jwt_handler.create_access_token(Identity(id=user.id, email=user.email))
    return {
        'message': message,
        'token': token,
        'user': UserResponse.model_validate(user).model_dump(),
    }


@router.post('/signup', status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, db: Session = Depends(get_db)):
    if not payload.email or not payload.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=CREDENTIALS_REQUIRED)

    problem = password_problem(payload.password)
    if problem:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=problem)

    try:
        if find_user_by_email(db, payload.email) is not None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=EMAIL_ALREADY_REGISTERED)

        user = User(email=payload.email, hashed_password=hash_password(payload.password))
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError as exc:
        # Lost a race with a concurrent signup for the same email.
        db.rollback()
        logger.info('Signup rejected by unique constraint for an existing email')
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=EMAIL_ALREADY_REGISTERED) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Signup failed')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Server error during signup',
        ) from exc

    logger.info('User %s signed up', user.id)
    return build_auth_response(user, 'User created successfully')


@router.post('/login')
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    if not payload.email or not payload.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=CREDENTIALS_REQUIRED)

    try:
        user = find_user_by_email(db, payload.email)
    except SQLAlchemyError as exc:
        logger.exception('Login lookup failed')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Server error during login',
        ) from exc

    if user is None or not verify_password(payload.password, user.hashed_password):
        logger.warning('Failed login attempt')
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    logger.info('User %s logged in', user.id)
    return build_auth_response(user, 'Login successful')
