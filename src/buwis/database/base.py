"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional

# Import modules directly to avoid circular import through domain/__init__.py
from buwis.domain.entities import QuarterPeriod, SessionRecord, TaxpayerInfo
from buwis.domain.session import FilingSession


class Database(ABC):
    """Abstract database interface for buwis."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Filing session operations
    @abstractmethod
    def save_session(self, session: FilingSession) -> None:
        """Insert or replace a filing session by ID."""
        pass

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[FilingSession]:
        """Get filing session by ID."""
        pass

    @abstractmethod
    def session_exists(self, session_id: str) -> bool:
        """Check whether a filing session is stored under ID."""
        pass

    @abstractmethod
    def list_sessions(
        self,
        user_id: Optional[str] = None,
        year: Optional[int] = None,
        quarter: Optional[QuarterPeriod] = None,
    ) -> list[SessionRecord]:
        """List stored sessions, optionally filtered by user and period."""
        pass

    @abstractmethod
    def delete_session(self, session_id: str) -> None:
        """Delete a filing session."""
        pass

    # Taxpayer profile operations
    @abstractmethod
    def save_taxpayer_profile(self, info: TaxpayerInfo) -> None:
        """Insert or replace a taxpayer profile by TIN."""
        pass

    @abstractmethod
    def get_taxpayer_profile(self, tin: str) -> Optional[TaxpayerInfo]:
        """Get taxpayer profile by TIN."""
        pass

    @abstractmethod
    def list_taxpayer_profiles(self) -> list[TaxpayerInfo]:
        """List all taxpayer profiles."""
        pass

    @abstractmethod
    def delete_taxpayer_profile(self, tin: str) -> None:
        """Delete a taxpayer profile."""
        pass
