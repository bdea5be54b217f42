from sqlalchemy.orm import Session
from sqlalchemy import delete
from app.models.finance import Expense, ExpenseType, Saving, Salary


class FinanceRepository:
    """Bulk deletes over household-scoped finance rows."""

    def __init__(self, db: Session):
        self.db = db

    def delete_personal_data(self, household_id: int, user_id: int) -> int:
        """
        Delete a user's own data inside one household: their PERSONAL
        expenses, their savings and their salaries. Shared expenses stay.

        Returns:
            Total number of rows deleted
        """
        statements = [
            delete(Expense).where(
                Expense.household_id == household_id,
                Expense.created_by_id == user_id,
                Expense.type == ExpenseType.PERSONAL,
            ),
            delete(Saving).where(
                Saving.household_id == household_id,
                Saving.user_id == user_id,
            ),
            delete(Salary).where(
                Salary.household_id == household_id,
                Salary.user_id == user_id,
            ),
        ]
        deleted = 0
        for stmt in statements:
            result = self.db.execute(stmt.execution_options(synchronize_session=False))
            deleted += result.rowcount or 0
        return deleted
