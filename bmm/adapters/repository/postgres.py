"""
PostgreSQL repository adapter - Implements MemberRepository and
VenueSessionRepository protocols.

This module provides the PostgreSQL implementation of the domain's
repository ports using psycopg3 with raw SQL.

Concurrency Design:
-------------------
Every method runs in exactly one transaction. Member writes lock the
member row with SELECT ... FOR UPDATE, re-check the stage guard, then
apply all changes before committing, so no caller can interleave
between the check and the write.

Seat counters change only through two conditional UPDATEs
(`_reserve_seat` / `_release_seat`). Under READ COMMITTED, a second
concurrent UPDATE of the same session row waits for the first and then
re-evaluates `reserved < capacity` against the committed value, so two
members racing for the last seat cannot both succeed. A CHECK
constraint on the table backs this up.

Lock order is always member row -> session rows (ascending id) ->
ticket rows, which keeps concurrent re-assignments deadlock free.
"""

import logging
from collections.abc import Collection
from datetime import datetime
from pathlib import Path

from psycopg import Cursor
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from bmm.domain.codes import check_code, same_identifier
from bmm.domain.models import (
    Member,
    Preferences,
    SpecialVoteApplication,
    Ticket,
    VenueSession,
    WriteResult,
)
from bmm.domain.ports import (
    AttendanceDecision,
    CheckInResult,
    Region,
    SpecialVoteInterest,
    SpecialVoteState,
    Stage,
    VerifyResult,
    Willingness,
    WriteStatus,
)

logger = logging.getLogger(__name__)

_MEMBER_COLUMNS = """
    membership_number, name, email, mobile, region, token, stage, attendance,
    absence_reason, preferred_venues, preferred_times, attendance_willingness,
    special_vote_interest, special_vote_state, special_vote_reason,
    special_vote_evidence, special_vote_phone, special_vote_approved,
    assigned_session_id, ticket_credential, checked_in_at, verified_at,
    preferences_submitted_at, venue_assigned_at, attendance_decided_at
"""

_MEMBER_PLACEHOLDERS = ", ".join(["%s"] * len(_MEMBER_COLUMNS.split(",")))

_SESSION_COLUMNS = "id, venue, address, region, starts_at, capacity, reserved"

_TICKET_COLUMNS = (
    "credential, membership_number, session_id, issued_at, consumed_at, revoked_at"
)


def _member_from_row(row: dict) -> Member:
    preferences = None
    if row["preferred_venues"] is not None:
        interest = row["special_vote_interest"]
        preferences = Preferences(
            preferred_venues=tuple(row["preferred_venues"]),
            preferred_times=tuple(row["preferred_times"] or ()),
            attendance_willingness=Willingness(row["attendance_willingness"]),
            special_vote_interest=SpecialVoteInterest(interest) if interest else None,
        )

    application = None
    if row["special_vote_reason"] is not None:
        application = SpecialVoteApplication(
            eligibility_reason=row["special_vote_reason"],
            evidence=row["special_vote_evidence"] or "",
            contact_phone=row["special_vote_phone"] or "",
        )

    return Member(
        membership_number=row["membership_number"],
        name=row["name"],
        region=Region(row["region"]),
        token=row["token"],
        email=row["email"],
        mobile=row["mobile"],
        stage=Stage(row["stage"]),
        attendance=AttendanceDecision(row["attendance"]),
        absence_reason=row["absence_reason"],
        preferences=preferences,
        special_vote_state=SpecialVoteState(row["special_vote_state"]),
        special_vote_application=application,
        special_vote_approved=row["special_vote_approved"],
        assigned_session_id=row["assigned_session_id"],
        ticket_credential=row["ticket_credential"],
        checked_in_at=row["checked_in_at"],
        verified_at=row["verified_at"],
        preferences_submitted_at=row["preferences_submitted_at"],
        venue_assigned_at=row["venue_assigned_at"],
        attendance_decided_at=row["attendance_decided_at"],
    )


def _session_from_row(row: dict) -> VenueSession:
    return VenueSession(
        id=row["id"],
        venue=row["venue"],
        address=row["address"],
        region=Region(row["region"]),
        starts_at=row["starts_at"],
        capacity=row["capacity"],
        reserved=row["reserved"],
    )


def _ticket_from_row(row: dict) -> Ticket:
    return Ticket(**row)


def _reserve_seat(cursor: Cursor, session_id: int) -> bool:
    """Atomic compare-and-increment of one session's reserved count."""
    cursor.execute(
        """
        UPDATE venue_sessions
        SET reserved = reserved + 1
        WHERE id = %s AND reserved < capacity
        """,
        (session_id,),
    )
    return cursor.rowcount == 1


def _release_seat(cursor: Cursor, session_id: int) -> None:
    """Atomic decrement, never below zero."""
    cursor.execute(
        """
        UPDATE venue_sessions
        SET reserved = reserved - 1
        WHERE id = %s AND reserved > 0
        """,
        (session_id,),
    )


def _lock_member(cursor: Cursor, membership_number: str) -> Member | None:
    cursor.execute(
        f"SELECT {_MEMBER_COLUMNS} FROM members WHERE membership_number = %s FOR UPDATE",
        (membership_number,),
    )
    row = cursor.fetchone()
    return _member_from_row(row) if row is not None else None


def _select_member(cursor: Cursor, membership_number: str) -> Member:
    cursor.execute(
        f"SELECT {_MEMBER_COLUMNS} FROM members WHERE membership_number = %s",
        (membership_number,),
    )
    return _member_from_row(cursor.fetchone())


def _live_ticket(cursor: Cursor, membership_number: str) -> Ticket | None:
    cursor.execute(
        f"""
        SELECT {_TICKET_COLUMNS} FROM tickets
        WHERE membership_number = %s AND revoked_at IS NULL
        FOR UPDATE
        """,
        (membership_number,),
    )
    row = cursor.fetchone()
    return _ticket_from_row(row) if row is not None else None


def _insert_ticket(
    cursor: Cursor, credential: str, membership_number: str, session_id: int | None
) -> Ticket:
    cursor.execute(
        f"""
        INSERT INTO tickets (credential, membership_number, session_id, issued_at)
        VALUES (%s, %s, %s, NOW())
        RETURNING {_TICKET_COLUMNS}
        """,
        (credential, membership_number, session_id),
    )
    ticket = _ticket_from_row(cursor.fetchone())
    cursor.execute(
        "UPDATE members SET ticket_credential = %s WHERE membership_number = %s",
        (credential, membership_number),
    )
    return ticket


class PostgresRegistrationRepository:
    """
    Implements MemberRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def add_member(self, member: Member) -> None:
        """Insert a member with whatever registration state it already carries."""
        preferences = member.preferences
        application = member.special_vote_application
        interest = preferences.special_vote_interest if preferences else None
        sql = f"""
            INSERT INTO members ({_MEMBER_COLUMNS})
            VALUES ({_MEMBER_PLACEHOLDERS})
        """
        with self._pool.connection() as conn:
            conn.execute(
                sql,
                (
                    member.membership_number,
                    member.name,
                    member.email,
                    member.mobile,
                    member.region.value,
                    member.token,
                    member.stage.value,
                    member.attendance.value,
                    member.absence_reason,
                    list(preferences.preferred_venues) if preferences else None,
                    list(preferences.preferred_times) if preferences else None,
                    preferences.attendance_willingness.value if preferences else None,
                    interest.value if interest else None,
                    member.special_vote_state.value,
                    application.eligibility_reason if application else None,
                    application.evidence if application else None,
                    application.contact_phone if application else None,
                    member.special_vote_approved,
                    member.assigned_session_id,
                    member.ticket_credential,
                    member.checked_in_at,
                    member.verified_at,
                    member.preferences_submitted_at,
                    member.venue_assigned_at,
                    member.attendance_decided_at,
                ),
            )
            conn.commit()

    def get(self, membership_number: str) -> Member | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(
                f"SELECT {_MEMBER_COLUMNS} FROM members WHERE membership_number = %s",
                (membership_number,),
            )
            row = cursor.fetchone()
        return _member_from_row(row) if row is not None else None

    def get_by_token(self, token: str) -> Member | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(f"SELECT {_MEMBER_COLUMNS} FROM members WHERE token = %s", (token,))
            row = cursor.fetchone()
        return _member_from_row(row) if row is not None else None

    def list_members(self) -> list[Member]:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(f"SELECT {_MEMBER_COLUMNS} FROM members ORDER BY membership_number")
            rows = cursor.fetchall()
        return [_member_from_row(row) for row in rows]

    def store_code(self, token: str, code_hash: str) -> bool:
        sql = """
            UPDATE members
            SET code_hash = %s, code_issued_at = NOW()
            WHERE token = %s
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (code_hash, token))
            conn.commit()
            return cursor.rowcount == 1

    def verify_code(
        self, token: str, membership_number: str, code: str, ttl_seconds: int
    ) -> tuple[VerifyResult, Member | None]:
        """
        Verify membership number and code, consuming the code on success.

        Uses SELECT FOR UPDATE so two concurrent verifications with the
        same code cannot both succeed: the second sees the cleared code.
        Both comparisons always run before any state-based return.
        """
        select_sql = """
            SELECT membership_number, code_hash,
                   code_issued_at > NOW() - %s::integer * INTERVAL '1 second' AS fresh
            FROM members
            WHERE token = %s
            FOR UPDATE
        """

        consume_sql = """
            UPDATE members
            SET code_hash = NULL,
                code_issued_at = NULL,
                stage = CASE WHEN stage = %s THEN %s ELSE stage END,
                verified_at = COALESCE(verified_at, NOW())
            WHERE membership_number = %s
        """

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(select_sql, (ttl_seconds, token))
            row = cursor.fetchone()

            expected = row["membership_number"] if row is not None else ""
            number_valid = same_identifier(expected, membership_number)
            code_valid = check_code(code, row["code_hash"] if row is not None else None)

            if row is None:
                conn.commit()
                return VerifyResult.NOT_FOUND, None

            if not (number_valid and code_valid):
                conn.commit()
                return VerifyResult.INVALID_CREDENTIALS, None

            if not row["fresh"]:
                conn.commit()
                return VerifyResult.EXPIRED, None

            cursor.execute(
                consume_sql,
                (Stage.NOT_STARTED.value, Stage.VERIFIED.value, row["membership_number"]),
            )
            member = _select_member(cursor, row["membership_number"])
            conn.commit()
            return VerifyResult.SUCCESS, member

    def save_preferences(
        self, membership_number: str, preferences: Preferences, allowed: Collection[Stage]
    ) -> WriteResult:
        sql = """
            UPDATE members
            SET preferred_venues = %s,
                preferred_times = %s,
                attendance_willingness = %s,
                special_vote_interest = %s,
                stage = %s,
                preferences_submitted_at = NOW()
            WHERE membership_number = %s
        """
        interest = preferences.special_vote_interest

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            member = _lock_member(cursor, membership_number)
            if member is None:
                conn.commit()
                return WriteResult(WriteStatus.NOT_FOUND)
            if member.stage not in allowed:
                conn.commit()
                return WriteResult(WriteStatus.STAGE_CONFLICT, member)

            cursor.execute(
                sql,
                (
                    list(preferences.preferred_venues),
                    list(preferences.preferred_times),
                    preferences.attendance_willingness.value,
                    interest.value if interest is not None else None,
                    Stage.PREFERENCES_SUBMITTED.value,
                    membership_number,
                ),
            )
            updated = _select_member(cursor, membership_number)
            conn.commit()
            return WriteResult(WriteStatus.APPLIED, updated)

    def assign_session(
        self,
        membership_number: str,
        session_id: int,
        allowed: Collection[Stage],
        replacement_credential: str,
    ) -> WriteResult:
        """
        Move the member's reservation to `session_id` in one transaction.

        Seats are touched in ascending session id order. When the seat
        cannot be reserved the transaction is rolled back, restoring any
        seat already released.
        """
        assign_sql = """
            UPDATE members
            SET assigned_session_id = %s,
                venue_assigned_at = NOW(),
                stage = CASE WHEN stage = %s THEN stage ELSE %s END
            WHERE membership_number = %s
        """

        revoke_sql = """
            UPDATE tickets SET revoked_at = NOW()
            WHERE credential = %s AND revoked_at IS NULL
        """

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            member = _lock_member(cursor, membership_number)
            if member is None:
                conn.commit()
                return WriteResult(WriteStatus.NOT_FOUND)
            if member.stage not in allowed:
                conn.commit()
                return WriteResult(WriteStatus.STAGE_CONFLICT, member)
            if not member.is_willing:
                conn.commit()
                return WriteResult(WriteStatus.NOT_WILLING, member)

            previous = member.assigned_session_id
            moving = previous != session_id
            if moving:
                if previous is not None and previous < session_id:
                    _release_seat(cursor, previous)
                if not _reserve_seat(cursor, session_id):
                    conn.rollback()
                    return WriteResult(WriteStatus.CAPACITY_EXCEEDED, member)
                if previous is not None and previous > session_id:
                    _release_seat(cursor, previous)

            cursor.execute(
                assign_sql,
                (
                    session_id,
                    Stage.ATTENDANCE_CONFIRMED.value,
                    Stage.VENUE_ASSIGNED.value,
                    membership_number,
                ),
            )

            ticket = None
            created = False
            if member.stage == Stage.ATTENDANCE_CONFIRMED:
                ticket = _live_ticket(cursor, membership_number)
                if moving or ticket is None:
                    if ticket is not None:
                        cursor.execute(revoke_sql, (ticket.credential,))
                    ticket = _insert_ticket(
                        cursor, replacement_credential, membership_number, session_id
                    )
                    created = True

            updated = _select_member(cursor, membership_number)
            conn.commit()
            return WriteResult(WriteStatus.APPLIED, updated, ticket, created)

    def confirm_attendance(
        self, membership_number: str, credential: str, allowed: Collection[Stage]
    ) -> WriteResult:
        """
        Mark the member attending and issue a ticket in one transaction.

        An existing live ticket is returned instead of issuing a second one.
        """
        confirm_sql = """
            UPDATE members
            SET stage = %s,
                attendance = %s,
                absence_reason = NULL,
                attendance_decided_at = CASE
                    WHEN stage = %s THEN attendance_decided_at ELSE NOW() END
            WHERE membership_number = %s
        """

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            member = _lock_member(cursor, membership_number)
            if member is None:
                conn.commit()
                return WriteResult(WriteStatus.NOT_FOUND)
            if member.stage not in allowed or member.assigned_session_id is None:
                conn.commit()
                return WriteResult(WriteStatus.STAGE_CONFLICT, member)

            cursor.execute(
                confirm_sql,
                (
                    Stage.ATTENDANCE_CONFIRMED.value,
                    AttendanceDecision.ATTENDING.value,
                    Stage.ATTENDANCE_CONFIRMED.value,
                    membership_number,
                ),
            )

            ticket = _live_ticket(cursor, membership_number)
            created = ticket is None
            if ticket is None:
                ticket = _insert_ticket(
                    cursor, credential, membership_number, member.assigned_session_id
                )

            updated = _select_member(cursor, membership_number)
            conn.commit()
            return WriteResult(WriteStatus.APPLIED, updated, ticket, created)

    def decline_attendance(
        self, membership_number: str, reason: str, allowed: Collection[Stage]
    ) -> WriteResult:
        """
        Mark the member not attending and give their seat back.

        Only the seat referenced by the member's own assigned_session_id is
        released, and the pointer is cleared in the same transaction so it
        can never be released twice.
        """
        decline_sql = """
            UPDATE members
            SET stage = %s,
                attendance = %s,
                absence_reason = %s,
                assigned_session_id = NULL,
                attendance_decided_at = NOW()
            WHERE membership_number = %s
        """

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            member = _lock_member(cursor, membership_number)
            if member is None:
                conn.commit()
                return WriteResult(WriteStatus.NOT_FOUND)
            if member.stage not in allowed:
                conn.commit()
                return WriteResult(WriteStatus.STAGE_CONFLICT, member)

            if member.assigned_session_id is not None:
                _release_seat(cursor, member.assigned_session_id)

            cursor.execute(
                decline_sql,
                (
                    Stage.ATTENDANCE_DECLINED.value,
                    AttendanceDecision.NOT_ATTENDING.value,
                    reason,
                    membership_number,
                ),
            )
            updated = _select_member(cursor, membership_number)
            conn.commit()
            return WriteResult(WriteStatus.APPLIED, updated)

    def save_special_vote(
        self,
        membership_number: str,
        application: SpecialVoteApplication,
        allowed: Collection[SpecialVoteState],
    ) -> WriteResult:
        sql = """
            UPDATE members
            SET special_vote_state = %s,
                special_vote_reason = %s,
                special_vote_evidence = %s,
                special_vote_phone = %s
            WHERE membership_number = %s
        """

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            member = _lock_member(cursor, membership_number)
            if member is None:
                conn.commit()
                return WriteResult(WriteStatus.NOT_FOUND)
            if (
                member.stage != Stage.ATTENDANCE_DECLINED
                or member.special_vote_state not in allowed
            ):
                conn.commit()
                return WriteResult(WriteStatus.STAGE_CONFLICT, member)

            cursor.execute(
                sql,
                (
                    SpecialVoteState.REQUESTED.value,
                    application.eligibility_reason,
                    application.evidence,
                    application.contact_phone,
                    membership_number,
                ),
            )
            updated = _select_member(cursor, membership_number)
            conn.commit()
            return WriteResult(WriteStatus.APPLIED, updated)

    def decide_special_vote(self, membership_number: str, approved: bool) -> WriteResult:
        sql = """
            UPDATE members
            SET special_vote_state = %s, special_vote_approved = %s
            WHERE membership_number = %s AND special_vote_state = %s
        """

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            member = _lock_member(cursor, membership_number)
            if member is None:
                conn.commit()
                return WriteResult(WriteStatus.NOT_FOUND)
            if member.special_vote_state != SpecialVoteState.REQUESTED:
                conn.commit()
                return WriteResult(WriteStatus.STAGE_CONFLICT, member)

            cursor.execute(
                sql,
                (
                    SpecialVoteState.DECIDED.value,
                    approved,
                    membership_number,
                    SpecialVoteState.REQUESTED.value,
                ),
            )
            updated = _select_member(cursor, membership_number)
            conn.commit()
            return WriteResult(WriteStatus.APPLIED, updated)

    def issue_ticket(self, membership_number: str, credential: str) -> WriteResult:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            member = _lock_member(cursor, membership_number)
            if member is None:
                conn.commit()
                return WriteResult(WriteStatus.NOT_FOUND)

            ticket = _live_ticket(cursor, membership_number)
            if ticket is not None and member.stage in (
                Stage.ATTENDANCE_CONFIRMED,
                Stage.CHECKED_IN,
            ):
                conn.commit()
                return WriteResult(WriteStatus.APPLIED, member, ticket)
            if member.stage != Stage.ATTENDANCE_CONFIRMED:
                conn.commit()
                return WriteResult(WriteStatus.STAGE_CONFLICT, member)

            ticket = _insert_ticket(
                cursor, credential, membership_number, member.assigned_session_id
            )
            updated = _select_member(cursor, membership_number)
            conn.commit()
            return WriteResult(WriteStatus.APPLIED, updated, ticket, True)

    def get_ticket(self, credential: str) -> Ticket | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(
                f"SELECT {_TICKET_COLUMNS} FROM tickets WHERE credential = %s", (credential,)
            )
            row = cursor.fetchone()
        return _ticket_from_row(row) if row is not None else None

    def consume_ticket(self, credential: str) -> tuple[CheckInResult, Ticket | None]:
        """
        Consume a ticket and check its holder in, at most once.

        The holder's member row is locked before the ticket row to keep the
        global lock order; the ticket is then re-read under lock so that of
        two concurrent scans exactly one sees consumed_at IS NULL.
        """
        check_in_sql = """
            UPDATE members
            SET stage = %s, checked_in_at = %s
            WHERE membership_number = %s
        """

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(
                "SELECT membership_number FROM tickets WHERE credential = %s", (credential,)
            )
            owner = cursor.fetchone()
            if owner is None:
                conn.commit()
                return CheckInResult.UNKNOWN, None

            _lock_member(cursor, owner["membership_number"])
            cursor.execute(
                f"SELECT {_TICKET_COLUMNS} FROM tickets WHERE credential = %s FOR UPDATE",
                (credential,),
            )
            ticket = _ticket_from_row(cursor.fetchone())

            if not ticket.is_live:
                conn.commit()
                return CheckInResult.UNKNOWN, None
            if ticket.consumed_at is not None:
                conn.commit()
                return CheckInResult.ALREADY_USED, ticket

            cursor.execute(
                f"""
                UPDATE tickets SET consumed_at = NOW()
                WHERE credential = %s
                RETURNING {_TICKET_COLUMNS}
                """,
                (credential,),
            )
            ticket = _ticket_from_row(cursor.fetchone())
            cursor.execute(
                check_in_sql,
                (Stage.CHECKED_IN.value, ticket.consumed_at, ticket.membership_number),
            )
            conn.commit()
            return CheckInResult.SUCCESS, ticket


class PostgresVenueRepository:
    """
    Implements VenueSessionRepository protocol via psycopg3.

    reserve/release use the same seat primitives as the member
    transactions above.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def add_session(
        self,
        venue: str,
        address: str,
        region: Region,
        starts_at: datetime,
        capacity: int,
    ) -> VenueSession:
        sql = f"""
            INSERT INTO venue_sessions (venue, address, region, starts_at, capacity)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING {_SESSION_COLUMNS}
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (venue, address, region.value, starts_at, capacity))
            session = _session_from_row(cursor.fetchone())
            conn.commit()
        return session

    def get_session(self, session_id: int) -> VenueSession | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(
                f"SELECT {_SESSION_COLUMNS} FROM venue_sessions WHERE id = %s", (session_id,)
            )
            row = cursor.fetchone()
        return _session_from_row(row) if row is not None else None

    def find_session(self, venue: str, starts_at: datetime) -> VenueSession | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(
                f"""
                SELECT {_SESSION_COLUMNS} FROM venue_sessions
                WHERE venue = %s AND starts_at = %s
                """,
                (venue, starts_at),
            )
            row = cursor.fetchone()
        return _session_from_row(row) if row is not None else None

    def list_sessions(self, region: Region | None = None) -> list[VenueSession]:
        sql = f"""
            SELECT {_SESSION_COLUMNS} FROM venue_sessions
            WHERE %s::text IS NULL OR region = %s
            ORDER BY starts_at, venue, id
        """
        value = region.value if region is not None else None
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (value, value))
            rows = cursor.fetchall()
        return [_session_from_row(row) for row in rows]

    def reserve(self, session_id: int) -> bool:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            reserved = _reserve_seat(cursor, session_id)
            conn.commit()
            return reserved

    def release(self, session_id: int) -> None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            _release_seat(cursor, session_id)
            conn.commit()


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration must be idempotent (IF NOT EXISTS).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: bmm/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
