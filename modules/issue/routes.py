"""
Issue Module - Customer Routes
================================
Signed-in shoppers report a complaint, bug or feature request.
"""

from typing import Optional

from fastapi import APIRouter, Request, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import action_response
from common.security import csrf_check
from modules.admin.permissions import PermissionSet
from modules.auth.deps import current_permissions
from modules.issue.service import issue_service

router = APIRouter(prefix="/shop", tags=["issues"])


class IssueReport(BaseModel):
    type: str = Field(..., max_length=20)
    title: str = Field(..., max_length=200)
    description: str = Field(..., max_length=5000)
    customer_email: Optional[str] = Field(None, max_length=320)
    customer_order_id: Optional[str] = Field(None, max_length=36)


@router.post("/issues")
async def report_issue(
    request: Request,
    body: IssueReport,
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    csrf_check(request)
    result = issue_service.create_issue(db, perms, body.model_dump())
    return action_response(result, success_status=201)
