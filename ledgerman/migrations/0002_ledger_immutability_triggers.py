# Database-level guard against UPDATE/DELETE on ledger entries (PostgreSQL only)

from django.db import migrations

CREATE_STATEMENTS = [
    """
    CREATE OR REPLACE FUNCTION ledgerman_prevent_ledger_mutation()
    RETURNS trigger AS $$
    BEGIN
      RAISE EXCEPTION 'ledgerman_ledgerentry is immutable';
    END;
    $$ LANGUAGE plpgsql
    """,
    """
    CREATE TRIGGER ledgerman_ledger_no_update
    BEFORE UPDATE ON ledgerman_ledgerentry
    FOR EACH ROW EXECUTE FUNCTION ledgerman_prevent_ledger_mutation()
    """,
    """
    CREATE TRIGGER ledgerman_ledger_no_delete
    BEFORE DELETE ON ledgerman_ledgerentry
    FOR EACH ROW EXECUTE FUNCTION ledgerman_prevent_ledger_mutation()
    """,
]

DROP_STATEMENTS = [
    "DROP TRIGGER IF EXISTS ledgerman_ledger_no_update ON ledgerman_ledgerentry",
    "DROP TRIGGER IF EXISTS ledgerman_ledger_no_delete ON ledgerman_ledgerentry",
    "DROP FUNCTION IF EXISTS ledgerman_prevent_ledger_mutation()",
]


def install_triggers(apps, schema_editor):
    if schema_editor.connection.vendor != "postgresql":
        return
    for statement in CREATE_STATEMENTS:
        schema_editor.execute(statement, params=None)


def remove_triggers(apps, schema_editor):
    if schema_editor.connection.vendor != "postgresql":
        return
    for statement in DROP_STATEMENTS:
        schema_editor.execute(statement, params=None)


class Migration(migrations.Migration):

    dependencies = [
        ("ledgerman", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(install_triggers, remove_triggers),
    ]
