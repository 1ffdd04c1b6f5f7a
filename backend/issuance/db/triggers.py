"""PostgreSQL triggers backing the numbering invariants at the storage layer.

The service layer already guards every write with status preconditions;
these triggers reject the same violations when the service layer is
bypassed (raw SQL, admin consoles, bulk scripts):

- a locked sequence keeps its starting number, prefix and lock, and its
  counter never moves backwards; locked sequences cannot be deleted
- a document number, once written, is never changed or cleared
- a non-draft document never returns to draft
- a final document is not edited in place and is never deleted

Violations raise SQLSTATE 23000, surfaced by SQLAlchemy as IntegrityError.
Each entry is a single statement so it can run through asyncpg.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

_SEQUENCE_GUARD = """
CREATE OR REPLACE FUNCTION document_sequences_guard() RETURNS trigger AS $$
BEGIN
    IF TG_OP = 'DELETE' THEN
        IF OLD.is_locked THEN
            RAISE EXCEPTION 'document sequence % is locked and cannot be deleted', OLD.id
                USING ERRCODE = 'integrity_constraint_violation';
        END IF;
        RETURN OLD;
    END IF;
    IF OLD.is_locked THEN
        IF NOT NEW.is_locked
           OR NEW.starting_number <> OLD.starting_number
           OR NEW.prefix IS DISTINCT FROM OLD.prefix
           OR NEW.tenant_id <> OLD.tenant_id
           OR NEW.document_type <> OLD.document_type THEN
            RAISE EXCEPTION 'document sequence % is locked', OLD.id
                USING ERRCODE = 'integrity_constraint_violation';
        END IF;
        IF NEW.current_number < OLD.current_number THEN
            RAISE EXCEPTION 'document sequence % cannot move backwards', OLD.id
                USING ERRCODE = 'integrity_constraint_violation';
        END IF;
    END IF;
    RETURN NEW;
END;
$$ LANGUAGE plpgsql
"""

_DOCUMENT_GUARD = """
CREATE OR REPLACE FUNCTION documents_guard() RETURNS trigger AS $$
BEGIN
    IF TG_OP = 'DELETE' THEN
        IF OLD.document_status <> 'draft' THEN
            RAISE EXCEPTION 'document % is not a draft and cannot be deleted', OLD.id
                USING ERRCODE = 'integrity_constraint_violation';
        END IF;
        RETURN OLD;
    END IF;
    IF OLD.document_number IS NOT NULL
       AND (NEW.document_number IS DISTINCT FROM OLD.document_number
            OR NEW.sequence_number IS DISTINCT FROM OLD.sequence_number) THEN
        RAISE EXCEPTION 'document % number cannot be changed', OLD.id
            USING ERRCODE = 'integrity_constraint_violation';
    END IF;
    IF OLD.document_status <> 'draft' AND NEW.document_status = 'draft' THEN
        RAISE EXCEPTION 'document % cannot return to draft', OLD.id
            USING ERRCODE = 'integrity_constraint_violation';
    END IF;
    IF OLD.document_status = 'final' AND NEW.document_status = 'final' THEN
        RAISE EXCEPTION 'document % is final', OLD.id
            USING ERRCODE = 'integrity_constraint_violation';
    END IF;
    RETURN NEW;
END;
$$ LANGUAGE plpgsql
"""

TRIGGER_NAMES = {
    "document_sequences": "trg_document_sequences_guard",
    "documents": "trg_documents_guard",
}

INSTALL_STATEMENTS: list[str] = [
    _SEQUENCE_GUARD,
    _DOCUMENT_GUARD,
    "DROP TRIGGER IF EXISTS trg_document_sequences_guard ON document_sequences",
    (
        "CREATE TRIGGER trg_document_sequences_guard "
        "BEFORE UPDATE OR DELETE ON document_sequences "
        "FOR EACH ROW EXECUTE FUNCTION document_sequences_guard()"
    ),
    "DROP TRIGGER IF EXISTS trg_documents_guard ON documents",
    (
        "CREATE TRIGGER trg_documents_guard "
        "BEFORE UPDATE OR DELETE ON documents "
        "FOR EACH ROW EXECUTE FUNCTION documents_guard()"
    ),
]

DROP_STATEMENTS: list[str] = [
    "DROP TRIGGER IF EXISTS trg_documents_guard ON documents",
    "DROP TRIGGER IF EXISTS trg_document_sequences_guard ON document_sequences",
    "DROP FUNCTION IF EXISTS documents_guard()",
    "DROP FUNCTION IF EXISTS document_sequences_guard()",
]


async def install_triggers(conn: AsyncConnection) -> None:
    """Create or replace the guard functions and (re)attach their triggers."""
    for statement in INSTALL_STATEMENTS:
        await conn.execute(text(statement))
