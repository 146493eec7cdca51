"""
Credit service for managing the prepaid credit ledger.
Provides atomic debit/credit operations with safety checks.

Neither debit nor credit commits: callers pair a balance change with a job
or payment write and commit both together.
"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from reelforge.models.user import User


class CreditService:
    """Service for credit management with atomic operations."""

    @staticmethod
    async def debit(db: AsyncSession, user_id: str, amount: int) -> bool:
        """
        Atomically debit credits from user balance.
        Prevents negative balances.

        Args:
            db: Database session
            user_id: User ID
            amount: Credits to debit

        Returns:
            True if debit successful, False if insufficient credits or
            unknown user

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError("Cannot debit negative amount")

        # Check and decrement in one statement: the row lock taken by the
        # UPDATE serializes concurrent debits against the same balance.
        result = await db.execute(
            update(User)
            .where(User.id == user_id)
            .where(User.credits >= amount)
            .values(credits=User.credits - amount)
        )

        return result.rowcount > 0

    @staticmethod
    async def credit(db: AsyncSession, user_id: str, amount: int) -> None:
        """
        Credit (add) credits to user balance.

        Args:
            db: Database session
            user_id: User ID
            amount: Credits to add (must be positive)

        Raises:
            ValueError: If amount is negative or zero, or user does not exist
        """
        if amount <= 0:
            raise ValueError("Credit amount must be positive")

        result = await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(credits=User.credits + amount)
        )

        if result.rowcount == 0:
            raise ValueError(f"User {user_id} not found")

    @staticmethod
    async def get_balance(db: AsyncSession, user_id: str) -> int:
        """
        Get current credit balance for user.

        Args:
            db: Database session
            user_id: User ID

        Returns:
            Current credit balance (0 if user not found)
        """
        result = await db.execute(
            select(User.credits).where(User.id == user_id)
        )
        credits = result.scalar_one_or_none()
        return credits or 0
