"""Repository for the local mirror of identity-provider users."""

from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from qahub.db.models import User, UserCreate
from qahub.exceptions import ConflictError
from qahub.logging import get_logger

logger = get_logger(__name__)


class UserRepository:
    """Repository for User operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, data: UserCreate) -> User:
        """Create a new user. The email is stored lowercased."""
        user = User(email=data.email.strip().lower(), full_name=data.full_name)
        if data.id is not None:
            user.id = data.id
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get(self, user_id: UUID) -> Optional[User]:
        """Get a user by ID."""
        return self.session.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by email, ignoring case."""
        statement = select(User).where(
            func.lower(User.email) == email.strip().lower()
        )
        return self.session.exec(statement).first()

    def sync_identity(
        self, user_id: UUID, email: str, full_name: Optional[str] = None
    ) -> User:
        """Make sure the local mirror holds the identity from a verified token.

        The email always follows the token, since the identity provider owns
        it. A display name is only filled in when missing so local edits are
        not clobbered.

        Raises:
            ConflictError: the email is mirrored for a different subject
        """
        email = email.strip().lower()
        user = self.get(user_id)
        if user is None:
            try:
                return self.create(
                    UserCreate(id=user_id, email=email, full_name=full_name)
                )
            except IntegrityError:
                self.session.rollback()
                # A concurrent first request for this subject may have won
                user = self.get(user_id)
                if user is None:
                    raise self._email_taken(email, user_id)

        changed = False
        if user.email != email:
            logger.info("user_email_synced", user_id=str(user_id))
            user.email = email
            changed = True
        if full_name and not user.full_name:
            user.full_name = full_name
            changed = True
        if changed:
            self.session.add(user)
            try:
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                raise self._email_taken(email, user_id)
            self.session.refresh(user)
        return user

    @staticmethod
    def _email_taken(email: str, user_id: UUID) -> ConflictError:
        logger.warning("user_email_conflict", user_id=str(user_id))
        return ConflictError(
            "This email belongs to a different account", details={"email": email}
        )
