# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Storage for status lists
"""

import datetime

import sqlalchemy.orm as sa_orm
from sqlalchemy import DateTime, Integer, String, Text, func, select, update
from sqlalchemy.orm import Mapped, mapped_column

import vc_common.db.database as db
import vc_common.status_list as sl

from vc_issuer import models


class StatusList(db.Base):
    """
    One bitstring status list. encoded_list is replaced as a whole on every change,
    version is incremented with it.
    """

    __tablename__ = "status_list"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    list_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    issuer_did: Mapped[str] = mapped_column(String(255), nullable=False)
    encoded_list: Mapped[str] = mapped_column(Text, nullable=False)
    purpose: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    total_entries: Mapped[int] = mapped_column(Integer, nullable=False, default=sl.DEFAULT_CAPACITY)
    next_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Next index to hand out. Never decreases, equals total_entries once the list is exhausted"""
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def to_domain(self) -> models.StatusList:
        return models.StatusList(
            list_id=self.list_id,
            issuer_did=self.issuer_did,
            encoded_list=self.encoded_list,
            purpose=sl.StatusPurpose(self.purpose),
            total_entries=self.total_entries,
            next_index=self.next_index,
            version=self.version,
        )


def create_status_list(session: sa_orm.Session, list_id: str, issuer_did: str, purpose: sl.StatusPurpose, total_entries: int) -> StatusList:
    """
    Creates a new empty status list, all bits unset
    """
    list_obj = sl.create_empty(total_entries)
    instance = StatusList(
        list_id=list_id,
        issuer_did=issuer_did,
        encoded_list=list_obj.pack(),
        purpose=purpose.value,
        total_entries=total_entries,
        next_index=0,
        version=0,
    )
    session.add(instance)
    session.flush()
    return instance


def get_status_list_orm(list_id: str, session: sa_orm.Session) -> StatusList | None:
    return session.scalars(select(StatusList).where(StatusList.list_id == list_id)).one_or_none()


def get_status_lists(session: sa_orm.Session, purpose: sl.StatusPurpose = None) -> list[StatusList]:
    query = select(StatusList).order_by(StatusList.id)
    if purpose is not None:
        query = query.where(StatusList.purpose == purpose.value)
    return list(session.scalars(query).all())


def next_list_number(session: sa_orm.Session, purpose: sl.StatusPurpose) -> int:
    """
    Sequence number following the highest <purpose>-<n> list id in use.
    Ids not following the pattern are ignored.
    """
    prefix = f"{purpose.value}-"
    list_ids = session.scalars(select(StatusList.list_id).where(StatusList.list_id.startswith(prefix, autoescape=True))).all()
    numbers = [int(list_id[len(prefix):]) for list_id in list_ids if list_id[len(prefix):].isdigit()]
    return max(numbers, default=0) + 1


def lock_open_status_list(session: sa_orm.Session, purpose: sl.StatusPurpose) -> StatusList | None:
    """
    Returns the oldest list of the purpose which still has free entries.
    The row stays locked until the transaction ends.
    """
    return session.scalars(
        select(StatusList)
        .where(StatusList.purpose == purpose.value, StatusList.next_index < StatusList.total_entries)
        .order_by(StatusList.id)
        .limit(1)
        .with_for_update()
    ).first()


def use_status_list_index(status_list: StatusList, session: sa_orm.Session) -> int:
    """
    Reserves the next index of a locked status list.
    """
    if status_list.next_index >= status_list.total_entries:
        raise ValueError(f"Status list {status_list.list_id} is exhausted")
    index = status_list.next_index
    status_list.next_index = index + 1
    session.add(status_list)
    session.flush()
    return index


def compare_and_swap_encoded_list(session: sa_orm.Session, list_id: str, new_encoded_list: str, expected_encoded_list: str) -> bool:
    """
    Replaces the encoded list only if it still holds the expected value.
    Returns False if the row changed in the meantime.
    """
    result = session.execute(
        update(StatusList)
        .where(StatusList.list_id == list_id, StatusList.encoded_list == expected_encoded_list)
        .values(encoded_list=new_encoded_list, version=StatusList.version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
