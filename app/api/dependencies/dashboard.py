from fastapi import Depends, Path
from sqlmodel import Session

from app.db import get_db
from app.models.user import User
from app.services.dashboard_scope import (
    DashboardContext,
    resolve_landing_context,
    resolve_profile_context,
    resolve_project_context,
    resolve_workspace_context,
)
from app.utils.auth import get_current_user


def get_landing_context(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DashboardContext:
    """All workspaces owned by the current user"""
    return resolve_landing_context(db, current_user)


def get_workspace_context(
    workspace_id: int = Path(..., description="Workspace ID"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DashboardContext:
    """Workspace dashboard; 404 if missing, 403 without membership"""
    return resolve_workspace_context(db, current_user, workspace_id)


def get_project_context(
    workspace_id: int = Path(..., description="Workspace ID"),
    project_id: int = Path(..., description="Project ID"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DashboardContext:
    """Project dashboard; the project must belong to the workspace"""
    return resolve_project_context(db, current_user, workspace_id, project_id)


def get_profile_context(
    user_id: int = Path(..., description="Profile user ID"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DashboardContext:
    """A user's own dashboard, or one a workspace manager may inspect"""
    return resolve_profile_context(db, current_user, user_id)
