from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models.user import User


class UserRepository:
    """Repository for User model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_email(self, email: str) -> User | None:
        """
        Get user by email, case-insensitively.

        Emails are stored lower-cased, but legacy rows may not be, so the
        comparison lower-cases the column as well.
        """
        return (
            self.db.query(User)
            .filter(func.lower(User.email) == email.strip().lower())
            .first()
        )

    def get_by_id(self, user_id: int) -> User | None:
        """Get user by internal ID"""
        return self.db.query(User).filter(User.id == user_id).first()

    def create_no_commit(self, user: User) -> User:
        """Add user and assign its ID without committing (for atomic ops)"""
        self.db.add(user)
        self.db.flush()
        return user

    def update(self, user: User) -> User:
        """Update existing user"""
        self.db.commit()
        self.db.refresh(user)
        return user
