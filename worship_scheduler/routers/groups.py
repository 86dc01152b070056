"""Group management API routes."""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from worship_scheduler.database import get_db
from worship_scheduler.models.group import Group, GroupMember
from worship_scheduler.models.user import User
from worship_scheduler.schemas.group import GroupCreate, GroupMemberAdd, GroupOut, GroupMemberOut

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=GroupOut, status_code=status.HTTP_201_CREATED)
def create_group(payload: GroupCreate, db: Session = Depends(get_db)):
    """Create a choir, band or other ensemble."""
    group = Group(church_id=payload.church_id, name=payload.name)
    db.add(group)
    db.commit()
    db.refresh(group)
    logger.info("Created group '%s' (%s) for church %s", group.name, group.group_id, group.church_id)
    return group


@router.get("/", response_model=list[GroupOut])
def list_groups(church_id: str, db: Session = Depends(get_db)):
    """List a church's groups with their members."""
    return db.query(Group).filter(Group.church_id == church_id).order_by(Group.name).all()


@router.get("/{group_id}", response_model=GroupOut)
def get_group(group_id: str, db: Session = Depends(get_db)):
    """Fetch a single group by ID with members."""
    group = db.query(Group).filter(Group.group_id == group_id).first()
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    return group


@router.post("/{group_id}/members", response_model=GroupMemberOut, status_code=status.HTTP_201_CREATED)
def add_member(group_id: str, payload: GroupMemberAdd, db: Session = Depends(get_db)):
    """Add a member to a group."""
    group = db.query(Group).filter(Group.group_id == group_id).first()
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")

    user = db.query(User).filter(User.user_id == payload.user_id, User.church_id == group.church_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    existing = (
        db.query(GroupMember)
        .filter(GroupMember.group_id == group_id, GroupMember.user_id == payload.user_id)
        .first()
    )
    if existing:
        raise HTTPException(status_code=409, detail="User is already a member of this group")

    member = GroupMember(group_id=group_id, user_id=payload.user_id)
    db.add(member)
    db.commit()
    db.refresh(member)
    logger.info("Added user %s to group %s", payload.user_id, group_id)
    return member


@router.delete("/{group_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(group_id: str, user_id: str, db: Session = Depends(get_db)):
    """Remove a member from a group."""
    member = (
        db.query(GroupMember)
        .filter(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
        .first()
    )
    if not member:
        raise HTTPException(status_code=404, detail="Membership not found")
    db.delete(member)
    db.commit()
    logger.info("Removed user %s from group %s", user_id, group_id)
