"""
Expense API Routes
"""

from fastapi import APIRouter

from app.api.dependencies import CurrentUserId, ExpenseServiceDep
from app.domain.expense import CreateExpenseRequest, UpdateExpenseRequest


router = APIRouter()


@router.post("/create-expense")
async def create_expense(
    request: CreateExpenseRequest,
    user_id: CurrentUserId,
    expense_service: ExpenseServiceDep,
):
    expense = await expense_service.create_expense(
        user_id=user_id,
        title=request.title,
        amount=request.amount,
        category=request.category,
        description=request.description,
        receipt_url=request.receipt_url,
        expense_date=request.expense_date,
    )
    return {"expense": expense.model_dump(mode="json", by_alias=True)}


@router.post("/update-expense")
async def update_expense(
    request: UpdateExpenseRequest,
    user_id: CurrentUserId,
    expense_service: ExpenseServiceDep,
):
    """Only the owner's row can be updated; anything else is a 404."""
    expense = await expense_service.update_expense(
        expense_id=request.expense_id,
        user_id=user_id,
        title=request.title,
        amount=request.amount,
        category=request.category,
        description=request.description,
        receipt_url=request.receipt_url,
        expense_date=request.expense_date,
    )
    return {"expense": expense.model_dump(mode="json", by_alias=True)}
