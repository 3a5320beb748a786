# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Storage for issued credentials
"""

import datetime

import sqlalchemy.orm as sa_orm
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy import DateTime, Integer, String, Text, JSON, func, select, update


import vc_common.db.database as db
from vc_issuer.db.status_list import StatusList
from vc_issuer import models


class IssuedCredential(db.Base):
    """
    A signed credential and the status list position it points to.
    status mirrors the bit at status_index and is written at most once after creation.
    """

    __tablename__ = "issued_vc"
    __table_args__ = (UniqueConstraint("status_list_id", "status_index", name="uq_issued_vc_status_position"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vc_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    student_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    vc_type: Mapped[str] = mapped_column(String(50), nullable=False)
    course_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    vc_document: Mapped[dict] = mapped_column(JSON, nullable=False)
    status_list_id: Mapped[str] = mapped_column(String(50), ForeignKey(StatusList.list_id), nullable=False)
    status_index: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=models.CredentialState.ACTIVE.value)
    issued_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revoke_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def to_domain(self) -> models.IssuedCredential:
        return models.IssuedCredential(
            credential_id=self.vc_id,
            subject_id=self.student_id,
            credential_type=self.vc_type,
            related_course_id=self.course_id,
            document=self.vc_document,
            status_list_id=self.status_list_id,
            status_index=self.status_index,
            status=models.CredentialState(self.status),
            issued_at=self.issued_at,
            revoked_at=self.revoked_at,
            revoke_reason=self.revoke_reason,
        )


def register_credential(
    session: sa_orm.Session,
    vc_id: str,
    student_id: str,
    vc_type: str,
    course_id: str | None,
    vc_document: dict,
    status_list_id: str,
    status_index: int,
    issued_at: datetime.datetime,
) -> IssuedCredential:
    """
    Stores a freshly issued credential as active
    """
    instance = IssuedCredential(
        vc_id=vc_id,
        student_id=student_id,
        vc_type=vc_type,
        course_id=course_id,
        vc_document=vc_document,
        status_list_id=status_list_id,
        status_index=status_index,
        status=models.CredentialState.ACTIVE.value,
        issued_at=issued_at,
    )
    session.add(instance)
    session.flush()
    return instance


def get_credential_orm(session: sa_orm.Session, vc_id: str) -> IssuedCredential | None:
    return session.scalars(select(IssuedCredential).where(IssuedCredential.vc_id == vc_id)).one_or_none()


def credential_exists(session: sa_orm.Session, vc_id: str) -> bool:
    return session.scalar(select(func.count()).select_from(IssuedCredential).where(IssuedCredential.vc_id == vc_id)) > 0


def get_credentials_by_student(
    session: sa_orm.Session,
    student_id: str,
    status: models.CredentialState = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[IssuedCredential], int]:
    """Returns one page of the credentials of a student, newest first, and the total count"""
    condition = IssuedCredential.student_id == student_id
    if status is not None:
        condition = condition & (IssuedCredential.status == status.value)
    total = session.scalar(select(func.count()).select_from(IssuedCredential).where(condition))
    credentials = session.scalars(
        select(IssuedCredential)
        .where(condition)
        .order_by(IssuedCredential.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return list(credentials), total


def mark_revoked(session: sa_orm.Session, vc_id: str, revoked_at: datetime.datetime, revoke_reason: str | None) -> bool:
    """
    Sets the revocation fields, only if the credential is still active.
    Returns False if another revocation got there first.
    """
    result = session.execute(
        update(IssuedCredential)
        .where(IssuedCredential.vc_id == vc_id, IssuedCredential.status == models.CredentialState.ACTIVE.value)
        .values(status=models.CredentialState.REVOKED.value, revoked_at=revoked_at, revoke_reason=revoke_reason)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
