import datetime
import enum
import typing as t

from .base import BaseModel
from .id import AuditLogID


class AuditActionType(enum.Enum):
    UserLogin = "USER_LOGIN"
    UserLogout = "USER_LOGOUT"
    CourseCreate = "COURSE_CREATE"
    CourseUpdate = "COURSE_UPDATE"
    CourseDelete = "COURSE_DELETE"
    CoursePublish = "COURSE_PUBLISH"
    ModuleCreate = "MODULE_CREATE"
    ModuleUpdate = "MODULE_UPDATE"
    ModuleDelete = "MODULE_DELETE"
    BlockCreate = "BLOCK_CREATE"
    BlockUpdate = "BLOCK_UPDATE"
    BlockDelete = "BLOCK_DELETE"
    GradeEntry = "GRADE_ENTRY"
    GradeChange = "GRADE_CHANGE"
    EnrollmentCreate = "ENROLLMENT_CREATE"
    EnrollmentUpdate = "ENROLLMENT_UPDATE"
    AssessmentSubmit = "ASSESSMENT_SUBMIT"
    AssessmentGrade = "ASSESSMENT_GRADE"


class AuditLogEntry(BaseModel):
    log_id: AuditLogID
    actor_id: str
    actor_name: str
    action_type: AuditActionType
    target_id: str
    details: str
    timestamp: datetime.datetime
    metadata: dict[str, t.Any] | None = None
