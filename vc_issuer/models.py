# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Domain types of the status list engine.
Persisted records live in vc_issuer.db and convert into these.
"""

import datetime
import enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from vc_common.status_list import StatusPurpose, BitstringStatusListSubject
from vc_common.key_configuration import Proof


class CredentialState(str, enum.Enum):
    """active --revoke--> revoked, revoked is terminal"""

    ACTIVE = "active"
    REVOKED = "revoked"


class StatusList(BaseModel):
    model_config = ConfigDict(frozen=True)

    list_id: str
    issuer_did: str
    encoded_list: str
    purpose: StatusPurpose
    total_entries: int
    next_index: int
    version: int = 0

    @property
    def is_exhausted(self) -> bool:
        return self.next_index >= self.total_entries

    @property
    def remaining(self) -> int:
        return self.total_entries - self.next_index


class StatusAllocation(BaseModel):
    """A reserved position on a status list"""

    model_config = ConfigDict(frozen=True)

    list_id: str
    index: int
    purpose: StatusPurpose
    status_list_uri: str


class IssuedCredential(BaseModel):
    model_config = ConfigDict(frozen=True)

    credential_id: str
    subject_id: str
    credential_type: str
    related_course_id: Optional[str] = None
    document: dict
    status_list_id: str
    status_index: int
    status: CredentialState
    issued_at: datetime.datetime
    revoked_at: Optional[datetime.datetime] = None
    revoke_reason: Optional[str] = None

    @property
    def is_revoked(self) -> bool:
        return self.status == CredentialState.REVOKED


###########################
# Credential Payload Types #
###########################


class _CredentialPayload(BaseModel):
    """
    Common part of all credential payloads.
    subject_did is optional, the issuer derives one from the student id if missing.
    """

    student_id: str = Field(min_length=1)
    subject_did: Optional[str] = None
    purpose: StatusPurpose = StatusPurpose.REVOCATION
    valid_until: Optional[datetime.datetime] = None

    @property
    def related_course_id(self) -> Optional[str]:
        return None

    def claims(self) -> dict:
        """The credentialSubject claims, without the subject id"""
        return self.model_dump(mode="json", exclude={"vc_type", "subject_did", "purpose", "valid_until"}, exclude_none=True)


class CourseCreditCredential(_CredentialPayload):
    vc_type: Literal["CourseCreditCredential"] = "CourseCreditCredential"
    course_id: str = Field(min_length=1)
    course_name: str
    credits: int = Field(gt=0)
    grade: str
    grade_point: float = Field(ge=0)
    semester: str
    academic_year: str
    delivery_mode: Literal["Onsite", "Online", "Hybrid"] = "Onsite"

    @property
    def related_course_id(self) -> Optional[str]:
        return self.course_id


class TransferredCourse(BaseModel):
    course_id: str
    course_name: str
    credits: int = Field(gt=0)
    institution: str
    grade: Optional[str] = None


class CreditTransferCredential(_CredentialPayload):
    vc_type: Literal["CreditTransferCredential"] = "CreditTransferCredential"
    source_course: TransferredCourse
    target_course: TransferredCourse
    approved_by: str
    approved_date: datetime.date
    conditions: Optional[str] = None

    @property
    def related_course_id(self) -> Optional[str]:
        return self.target_course.course_id


class DegreeCredential(_CredentialPayload):
    vc_type: Literal["DegreeCredential"] = "DegreeCredential"
    degree_type: str
    degree_name: str
    major: str
    total_credits: int = Field(gt=0)
    gpa: float = Field(ge=0)
    graduation_date: datetime.date
    honor: Optional[str] = None


class AchievementCredential(_CredentialPayload):
    vc_type: Literal["AchievementCredential"] = "AchievementCredential"
    achievement_type: str
    achievement_name: str
    issued_by: str
    achieved_date: datetime.date


CredentialPayload = Annotated[
    Union[CourseCreditCredential, CreditTransferCredential, DegreeCredential, AchievementCredential],
    Field(discriminator="vc_type"),
]


##################
# Published Data #
##################


class PublishedStatusListCredential(BaseModel):
    """
    https://www.w3.org/TR/vc-bitstring-status-list/#bitstringstatuslistcredential
    """

    model_config = ConfigDict(populate_by_name=True)

    context: list[str] = Field(
        alias="@context",
        default=["https://www.w3.org/ns/credentials/v2"],
    )
    id: str
    type: list[str] = ["VerifiableCredential", "BitstringStatusListCredential"]
    issuer: str
    validFrom: str
    validUntil: Optional[str] = None
    credentialSubject: BitstringStatusListSubject
    proof: Optional[Proof] = None

    def unsigned_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"proof"})
