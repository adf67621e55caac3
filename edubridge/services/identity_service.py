"""
edubridge/services/identity_service.py
Identity directory: registration, verification and teaching assignments

Students register with a matric ID such as 23DBS23F1001:

    23    institution code
    DBS   programme
    23    entry year (2023)
    F1    session (F1 / F2)
    001   student number

They are approved on registration. Lecturers register with an employee ID
(L123456) and an institutional email, and wait for an admin to verify them.
"""
import logging
import re
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edubridge.config.settings import settings
from edubridge.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    ErrorCode,
)
from edubridge.orm.user import User, UserRole, VerificationStatus, LEGACY_PROGRAM_UNSET
from edubridge.services import catalog_service
from edubridge.services.admin_log import log_admin_action, AdminAction

logger = logging.getLogger(__name__)

MATRIC_ID_PATTERN = re.compile(r"^(\d{2})([A-Z]{3})(\d{2})(F[12])(\d{3})$")
EMPLOYEE_ID_PATTERN = re.compile(r"^L\d{6}$")
EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PHONE_PATTERN = re.compile(r"^(\+60|60)?0?[1-9][0-9]{7,9}$")
FULL_NAME_PATTERN = re.compile(r"^[a-zA-Z\s.'`@/-]+$")


@dataclass(frozen=True)
class MatricInfo:
    matric_id: str
    institution_code: str
    programme: str
    entry_year: str
    session: str
    student_number: str

    @property
    def session_name(self) -> str:
        return "Session 1" if self.session == "F1" else "Session 2"


# ================= FIELD VALIDATION =================

def parse_matric_id(matric_id: str) -> MatricInfo:
    """
    Split a matric ID into its parts.

    Raises:
        ValidationError: bad format or foreign institution code
    """
    clean_id = (matric_id or "").strip().upper()
    match = MATRIC_ID_PATTERN.match(clean_id)
    if not match:
        raise ValidationError(
            "Invalid matric ID format. Example: 23DBS23F1001",
            field="matric_id",
            code=ErrorCode.INVALID_FORMAT,
        )

    institution, programme, year, session, number = match.groups()
    if institution != settings.INSTITUTION_CODE:
        raise ValidationError(
            f"Only {settings.INSTITUTION_NAME} students (ID starting with "
            f"{settings.INSTITUTION_CODE}) can register",
            field="matric_id",
        )

    return MatricInfo(
        matric_id=clean_id,
        institution_code=institution,
        programme=programme,
        entry_year=f"20{year}",
        session=session,
        student_number=number,
    )


def normalize_employee_id(employee_id: str) -> str:
    clean_id = (employee_id or "").strip().upper()
    if not EMPLOYEE_ID_PATTERN.match(clean_id):
        raise ValidationError(
            "Invalid employee ID format. Example: L123456",
            field="employee_id",
            code=ErrorCode.INVALID_FORMAT,
        )
    return clean_id


def normalize_email(email: str, institutional: bool = False) -> str:
    clean = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(clean):
        raise ValidationError("Please enter a valid email address", field="email",
                              code=ErrorCode.INVALID_FORMAT)
    if institutional and not clean.endswith("@" + settings.INSTITUTIONAL_EMAIL_DOMAIN):
        raise ValidationError(
            f"Lecturers must register with an @{settings.INSTITUTIONAL_EMAIL_DOMAIN} email",
            field="email",
        )
    return clean


def normalize_full_name(full_name: str) -> str:
    name = " ".join((full_name or "").split())
    if len(name) < 2:
        raise ValidationError("Full name must be at least 2 characters", field="full_name")
    if len(name) > 100:
        raise ValidationError("Full name must be less than 100 characters", field="full_name")
    if not FULL_NAME_PATTERN.match(name):
        raise ValidationError(
            "Full name can only contain letters, spaces, and common name characters",
            field="full_name",
        )
    return name


def normalize_phone_number(phone_number: Optional[str]) -> Optional[str]:
    """Malaysian numbers, normalized to +60 form. Empty means not given."""
    if phone_number is None:
        return None
    clean = re.sub(r"[\s-]", "", phone_number)
    if not clean:
        return None
    if not PHONE_PATTERN.match(clean):
        raise ValidationError(
            "Please enter a valid Malaysian phone number (+60xxxxxxxxx)",
            field="phone_number",
        )
    if clean.startswith("+60"):
        return clean
    if clean.startswith("60"):
        return f"+{clean}"
    if clean.startswith("0"):
        return f"+60{clean[1:]}"
    return f"+60{clean}"


def _clean_codes(values: Optional[Iterable[str]]) -> List[str]:
    seen = []
    for value in values or []:
        code = (value or "").strip().upper()
        if code and code not in seen:
            seen.append(code)
    return seen


async def _validate_teaching_assignment(
    db: AsyncSession,
    teaching_subjects: List[str],
    programmes: List[str],
):
    """Programmes must exist; each subject must exist under one of them (or anywhere)."""
    for programme_id in programmes:
        if await catalog_service.get_programme(db, programme_id) is None:
            raise ValidationError(f"Unknown programme: {programme_id}", field="programmes",
                                  code=ErrorCode.PROGRAMME_NOT_FOUND)

    if not teaching_subjects:
        return

    found = await catalog_service.find_subjects_by_code(db, teaching_subjects)
    valid_codes = {
        subject.code for subject in found
        if not programmes or subject.programme_id in programmes
    }
    missing = [code for code in teaching_subjects if code not in valid_codes]
    if missing:
        raise ValidationError(
            f"Unknown teaching subjects: {', '.join(missing)}",
            field="teaching_subjects",
            details={"missing": missing},
            code=ErrorCode.SUBJECT_NOT_FOUND,
        )


async def _ensure_unique(db: AsyncSession, email: str, **identifiers):
    clauses = [User.email == email]
    for column, value in identifiers.items():
        clauses.append(getattr(User, column) == value)

    result = await db.execute(select(User).where(or_(*clauses)))
    existing = result.scalars().first()
    if existing is None:
        return

    if existing.email == email:
        raise ConflictError("An account with this email already exists", code=ErrorCode.DUPLICATE,
                            details={"field": "email"})
    for column, value in identifiers.items():
        if getattr(existing, column) == value:
            raise ConflictError(f"An account with this {column} already exists", code=ErrorCode.DUPLICATE,
                                details={"field": column})


async def _commit_new_user(db: AsyncSession, user: User) -> User:
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("An account with these details already exists", code=ErrorCode.DUPLICATE)
    await db.refresh(user)
    return user


# ================= REGISTRATION =================

async def register_student(
    db: AsyncSession,
    matric_id: str,
    full_name: str,
    email: str,
    phone_number: Optional[str] = None,
) -> User:
    """
    Register a student. The programme comes from the matric ID and must be
    an active catalog programme.
    """
    info = parse_matric_id(matric_id)
    full_name = normalize_full_name(full_name)
    email = normalize_email(email)
    phone_number = normalize_phone_number(phone_number)

    programme = await catalog_service.get_programme(db, info.programme)
    if programme is None or not programme.is_active:
        raise ValidationError(
            f"Programme {info.programme} is not offered",
            field="matric_id",
            code=ErrorCode.PROGRAMME_NOT_FOUND,
        )

    await _ensure_unique(db, email, matric_id=info.matric_id)

    user = User(
        email=email,
        full_name=full_name,
        phone_number=phone_number,
        role=UserRole.student,
        matric_id=info.matric_id,
        programme=info.programme,
        entry_year=info.entry_year,
        session=info.session,
        teaching_subjects=[],
        programmes=[],
        verification_status=VerificationStatus.approved,
        is_active=True,
    )
    user = await _commit_new_user(db, user)
    logger.info(f"Student registered: {user.matric_id} (user {user.id})")
    return user


async def register_lecturer(
    db: AsyncSession,
    employee_id: str,
    full_name: str,
    email: str,
    phone_number: Optional[str] = None,
    department: Optional[str] = None,
    programmes: Optional[Iterable[str]] = None,
    teaching_subjects: Optional[Iterable[str]] = None,
) -> User:
    """Register a lecturer. The account stays pending until an admin verifies it."""
    employee_id = normalize_employee_id(employee_id)
    full_name = normalize_full_name(full_name)
    email = normalize_email(email, institutional=True)
    phone_number = normalize_phone_number(phone_number)
    programmes = _clean_codes(programmes)
    teaching_subjects = _clean_codes(teaching_subjects)

    await _validate_teaching_assignment(db, teaching_subjects, programmes)
    await _ensure_unique(db, email, employee_id=employee_id)

    user = User(
        email=email,
        full_name=full_name,
        phone_number=phone_number,
        role=UserRole.lecturer,
        employee_id=employee_id,
        department=(department or "").strip() or None,
        teaching_subjects=teaching_subjects,
        programmes=programmes,
        program=programmes[0] if programmes else LEGACY_PROGRAM_UNSET,
        verification_status=VerificationStatus.pending,
        is_active=True,
    )
    user = await _commit_new_user(db, user)
    logger.info(f"Lecturer registered: {user.employee_id} (user {user.id}), awaiting verification")
    return user


# ================= DIRECTORY READS =================

async def get_user(db: AsyncSession, user_id: int) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await get_user(db, user_id)
    if user is None:
        raise NotFoundError("User", user_id, code=ErrorCode.USER_NOT_FOUND)
    return user


async def list_users(
    db: AsyncSession,
    role: Optional[UserRole] = None,
    verification_status: Optional[VerificationStatus] = None,
) -> List[User]:
    query = select(User)
    if role is not None:
        query = query.where(User.role == role)
    if verification_status is not None:
        query = query.where(User.verification_status == verification_status)
    query = query.order_by(User.created_at.desc(), User.id.desc())

    result = await db.execute(query)
    return list(result.scalars().all())


# ================= ADMIN OPERATIONS =================

def _require_admin(actor: User):
    if not actor.is_admin:
        raise AuthorizationError("Only admins can manage users", code=ErrorCode.ROLE_NOT_ALLOWED)


async def verify_user(db: AsyncSession, admin: User, user_id: int) -> User:
    """Approve a pending registration."""
    _require_admin(admin)
    user = await get_user_or_404(db, user_id)

    if user.verification_status != VerificationStatus.pending:
        raise ConflictError(
            f"Registration is already {user.verification_status.value}",
            code=ErrorCode.REGISTRATION_ALREADY_DECIDED,
        )

    user.verification_status = VerificationStatus.approved
    user.rejection_reason = None
    await db.commit()
    await db.refresh(user)

    logger.info(f"User {user.id} verified by admin {admin.id}")
    await log_admin_action(db, admin.id, AdminAction.VERIFY_USER, "user", user.id)
    return user


async def reject_user(db: AsyncSession, admin: User, user_id: int, reason: str) -> User:
    """Reject a pending registration. The account is deactivated."""
    _require_admin(admin)
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A rejection reason is required", field="reason", code=ErrorCode.MISSING_FIELD)

    user = await get_user_or_404(db, user_id)
    if user.verification_status != VerificationStatus.pending:
        raise ConflictError(
            f"Registration is already {user.verification_status.value}",
            code=ErrorCode.REGISTRATION_ALREADY_DECIDED,
        )

    user.verification_status = VerificationStatus.rejected
    user.rejection_reason = reason
    user.is_active = False
    await db.commit()
    await db.refresh(user)

    logger.info(f"User {user.id} rejected by admin {admin.id}: {reason}")
    await log_admin_action(db, admin.id, AdminAction.REJECT_USER, "user", user.id, {"reason": reason})
    return user


async def update_teaching_assignments(
    db: AsyncSession,
    admin: User,
    lecturer_id: int,
    teaching_subjects: Iterable[str],
    programmes: Iterable[str],
) -> User:
    """Replace a lecturer's teaching subjects and programmes."""
    _require_admin(admin)
    lecturer = await get_user_or_404(db, lecturer_id)
    if not lecturer.is_lecturer:
        raise ValidationError("Teaching assignments apply to lecturers only", field="user_id")

    teaching_subjects = _clean_codes(teaching_subjects)
    programmes = _clean_codes(programmes)
    await _validate_teaching_assignment(db, teaching_subjects, programmes)

    previous = {
        "teaching_subjects": list(lecturer.teaching_subjects or []),
        "programmes": list(lecturer.programmes or []),
    }
    lecturer.teaching_subjects = teaching_subjects
    lecturer.programmes = programmes
    if programmes:
        lecturer.program = programmes[0]
    await db.commit()
    await db.refresh(lecturer)

    logger.info(f"Teaching assignments for lecturer {lecturer.id} updated by admin {admin.id}")
    await log_admin_action(
        db, admin.id, AdminAction.UPDATE_TEACHING_ASSIGNMENTS, "user", lecturer.id,
        {"previous": previous, "teaching_subjects": teaching_subjects, "programmes": programmes},
    )
    return lecturer


async def promote_to_admin(db: AsyncSession, admin: User, user_id: int) -> User:
    """The only role change allowed after creation."""
    _require_admin(admin)
    user = await get_user_or_404(db, user_id)
    if user.is_admin:
        raise ConflictError("User is already an admin", code=ErrorCode.CONFLICT)

    previous_role = user.role.value
    user.role = UserRole.admin
    user.verification_status = VerificationStatus.approved
    await db.commit()
    await db.refresh(user)

    logger.info(f"User {user.id} promoted from {previous_role} to admin by admin {admin.id}")
    await log_admin_action(db, admin.id, AdminAction.PROMOTE_TO_ADMIN, "user", user.id,
                           {"previous_role": previous_role})
    return user


async def audit_teaching_subjects(db: AsyncSession) -> Dict[int, List[str]]:
    """
    Lecturers whose teaching subject codes no longer exist in the catalog.

    Returns:
        {lecturer_id: [missing codes]}; lecturers without drift are omitted
    """
    lecturers = await list_users(db, role=UserRole.lecturer)
    all_codes = set()
    for lecturer in lecturers:
        all_codes.update(lecturer.teaching_subjects or [])

    known = {subject.code for subject in await catalog_service.find_subjects_by_code(db, all_codes)}

    drift: Dict[int, List[str]] = defaultdict(list)
    for lecturer in lecturers:
        for code in lecturer.teaching_subjects or []:
            if code not in known:
                drift[lecturer.id].append(code)

    if drift:
        logger.warning(f"Teaching subject drift found for {len(drift)} lecturer(s)")
    return dict(drift)
