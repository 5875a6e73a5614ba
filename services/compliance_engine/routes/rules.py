"""
Rule Routes
===========

Read access to persisted compliance rules.

Version: 0.1.0
"""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from shared.models.common import BaseResponse
from services.compliance_engine.persistence import RuleRepository

router = APIRouter()


def get_repository(request: Request) -> RuleRepository:
    return request.app.state.container.repository


@router.get("", response_model=None)
async def list_rules(
    limit: int = Query(default=100, ge=1, le=500),
    repository: RuleRepository = Depends(get_repository),
) -> Any:
    """
    Stored rules, ordered by title.

    Always empty in real-time only mode.
    """
    rules = await repository.get_all_rules(limit=limit)
    return BaseResponse[dict[str, Any]](
        data={
            "rules": [rule.model_dump(mode="json") for rule in rules],
            "total": len(rules),
            "persistence_active": repository.is_active,
        }
    )
