from sqlalchemy import text
from unilib.extensions import db

# LoanService looks for this text in the driver error to map it to Conflict
OVERBOOKING_GUARD_MESSAGE = "No copies available"

SQLITE_TRIGGER_SQL = r"""
CREATE TRIGGER IF NOT EXISTS trg_loans_overbooking_guard
BEFORE INSERT ON loans
WHEN NEW.return_date IS NULL
 AND (SELECT COUNT(*) FROM loans WHERE book_id = NEW.book_id AND return_date IS NULL)
     >= (SELECT total_copies FROM books WHERE id = NEW.book_id)
BEGIN
    SELECT RAISE(ABORT, 'No copies available');
END
"""

MSSQL_TRIGGER_SQL = r"""
IF OBJECT_ID(N'dbo.trg_loans_overbooking_guard', N'TR') IS NULL
BEGIN
    EXEC('
    CREATE TRIGGER dbo.trg_loans_overbooking_guard
    ON dbo.loans
    AFTER INSERT
    AS
    BEGIN
        SET NOCOUNT ON;

        IF EXISTS (
            SELECT 1
            FROM dbo.books b
            INNER JOIN (SELECT DISTINCT book_id FROM inserted) i ON i.book_id = b.id
            WHERE (
                SELECT COUNT(*)
                FROM dbo.loans l WITH (UPDLOCK, HOLDLOCK)
                WHERE l.book_id = b.id AND l.return_date IS NULL
            ) > b.total_copies
        )
        BEGIN
            RAISERROR(''No copies available'', 16, 1);
            ROLLBACK TRAN;
            RETURN;
        END
    END
    ')
END
"""

_TRIGGERS = {
    "sqlite": SQLITE_TRIGGER_SQL,
    "mssql": MSSQL_TRIGGER_SQL,
}


def ensure_db_objects(app):
    """
    Installs the storage-level overbooking guard for dialects that have one.
    Other dialects rely on the checkout lock + loan_version claim only.
    """
    with app.app_context():
        dialect = db.engine.dialect.name
        ddl = _TRIGGERS.get(dialect)
        if ddl is None:
            app.logger.info(f"[db_objects] no overbooking trigger for dialect={dialect}, skipped.")
            return

        conn = db.engine.connect()
        trans = conn.begin()
        try:
            conn.execute(text(ddl))
            trans.commit()
            app.logger.info(f"[db_objects] overbooking trigger ensured ({dialect}).")
        except Exception as e:
            trans.rollback()
            app.logger.error(f"[db_objects] ERROR: {e}")
            raise
        finally:
            conn.close()
