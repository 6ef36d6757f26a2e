"""Credential store: user lookups and writes over a SQLAlchemy session.

Passwords arrive here already hashed; hashing is the caller's pre-write step.
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import DuplicateEmail
from app.models.user import User, UserRole


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def email_taken_by_other(db: Session, email: str, user_id: int) -> bool:
    """True if email belongs to an account other than user_id."""
    return (
        db.query(User.id)
        .filter(User.email == normalize_email(email), User.id != user_id)
        .first()
        is not None
    )


def _commit(db: Session) -> None:
    """Commit; a concurrent write of the same email surfaces as DuplicateEmail."""
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        # users.email is the only unique column besides the primary key.
        raise DuplicateEmail() from e


def create_user(
    db: Session,
    *,
    email: str,
    password_hash: str,
    name: str,
    role: UserRole = UserRole.USER,
) -> User:
    user = User(
        email=normalize_email(email),
        password_hash=password_hash,
        name=name,
        role=role.value,
        is_active=True,
    )
    db.add(user)
    _commit(db)
    db.refresh(user)
    return user


def save_user(db: Session, user: User) -> User:
    """Persist pending changes on user and reload server-side columns."""
    db.add(user)
    _commit(db)
    db.refresh(user)
    return user


def count_users(db: Session) -> int:
    return db.query(User).count()


def list_users(db: Session, *, offset: int, limit: int) -> list[User]:
    return db.query(User).order_by(User.id).offset(offset).limit(limit).all()
