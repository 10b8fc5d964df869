"""
Schema Check Service - Validates the database has what the swap card query reads

Migrations are owned elsewhere; this only reports drift so the app can fail
fast instead of serving 503s from a broken join.

Usage:
    # At startup (in app.py)
    from services.schema_check import run_schema_check
    report = run_schema_check()
    if not report['is_valid']:
        print(report['summary'])

    # CLI
    python cli.py schema-check
"""

from typing import Dict, List, Any, Set
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from models.database import db


# Columns the swap card query selects or joins on. Missing 'required'
# columns break the query; missing 'optional' ones only degrade cards.
EXPECTED_SCHEMA = {
    'users': {
        'required': ['id'],
        'optional': ['display_name', 'email', 'created_at'],
    },
    'bookings': {
        'required': ['id', 'user_id'],
        'optional': [
            'title', 'city', 'country', 'provider', 'check_in_date',
            'check_out_date', 'original_price', 'swap_value', 'status', 'created_at',
        ],
    },
    'swaps': {
        'required': ['id', 'source_booking_id', 'status', 'created_at'],
        'optional': ['expires_at'],
    },
    'proposals': {
        'required': ['id', 'swap_id', 'proposer_user_id', 'proposer_booking_id', 'created_at'],
        'optional': ['status', 'additional_payment', 'conditions', 'expires_at'],
    },
}


def get_database_tables() -> Set[str]:
    """Tables visible through the current engine."""
    return set(inspect(db.engine).get_table_names())


def get_database_columns(table_name: str) -> Set[str]:
    """Columns of one table through the current engine."""
    return {col['name'] for col in inspect(db.engine).get_columns(table_name)}


def run_schema_check() -> Dict[str, Any]:
    """
    Compare the database to EXPECTED_SCHEMA.

    Returns:
        Dict with:
            - is_valid: bool - True if no critical issues
            - missing_tables: List of tables that don't exist
            - missing_columns: List of {table, column, severity}
            - summary: Human-readable summary string

    Raises:
        SQLAlchemyError: the database could not be inspected
    """
    missing_tables: List[str] = []
    missing_columns: List[Dict[str, str]] = []

    db_tables = get_database_tables()

    for table_name, schema in EXPECTED_SCHEMA.items():
        if table_name not in db_tables:
            missing_tables.append(table_name)
            continue

        db_columns = get_database_columns(table_name)
        for severity, key in (('critical', 'required'), ('warning', 'optional')):
            for col in schema[key]:
                if col not in db_columns:
                    missing_columns.append({'table': table_name, 'column': col, 'severity': severity})

    critical = [c for c in missing_columns if c['severity'] == 'critical']
    warnings = [c for c in missing_columns if c['severity'] == 'warning']
    is_valid = not missing_tables and not critical

    summary_parts = []
    if missing_tables:
        summary_parts.append(f"Missing tables: {', '.join(missing_tables)}")
    if critical:
        cols = [f"{c['table']}.{c['column']}" for c in critical]
        summary_parts.append(f"Missing critical columns: {', '.join(cols)}")
    if warnings:
        summary_parts.append(f"{len(warnings)} optional columns missing")

    return {
        'is_valid': is_valid,
        'missing_tables': missing_tables,
        'missing_columns': missing_columns,
        'summary': '; '.join(summary_parts) if summary_parts else 'Schema OK',
    }


def check_and_report(echo=print) -> bool:
    """
    Run schema check and print a report. Returns True if valid.
    """
    try:
        report = run_schema_check()
    except SQLAlchemyError as e:
        echo(f"Schema check failed: {e}")
        return False

    echo("=" * 60)
    echo("SCHEMA CHECK REPORT")
    echo("=" * 60)
    echo("Status: OK" if report['is_valid'] else "Status: SCHEMA DRIFT DETECTED")
    for table in report['missing_tables']:
        echo(f"   missing table: {table}")
    for col in report['missing_columns']:
        echo(f"   missing {col['severity']} column: {col['table']}.{col['column']}")
    echo("=" * 60)
    return report['is_valid']
