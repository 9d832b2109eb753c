# alembic/env.py
from logging.config import fileConfig
from alembic import context
from sqlalchemy import engine_from_config, pool

# --- Load .env so we can read DB_URL
import os, sys
from pathlib import Path
from dotenv import load_dotenv

# Ensure project root is on sys.path (so "model" imports work when running alembic from repo root)
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Load .env at project root
load_dotenv(PROJECT_ROOT / ".env")

# SQLAlchemy Base metadata
from model.base import Base

# Load all models so they're registered with Base.metadata
from model import load_all_models
load_all_models()

config = context.config

# Prefer DB_URL from env over alembic.ini
db_url = os.getenv("DB_URL")
if db_url:
    config.set_main_option("sqlalchemy.url", db_url)

# Logging config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# ===================================================================
# Safety checks with process_revision_directives
# ===================================================================

# List of protected tables that should NEVER be dropped
PROTECTED_TABLES = {
    # Accounts
    'users', 'user_credentials', 'user_profiles',

    # Catalog
    'countries', 'developers', 'properties',

    # Buyer activity
    'property_purchases', 'purchase_messages', 'property_favorites',
}

def process_revision_directives(context, revision, directives):
    """
    Safety check for autogenerate migrations.
    Prevents accidental table drops of protected tables.
    """
    if config.cmd_opts and config.cmd_opts.autogenerate:
        script = directives[0]

        # Check for dangerous operations
        dangerous_ops = []

        for op in script.upgrade_ops.ops:
            # Check for table drops
            if hasattr(op, 'table_name') and op.__class__.__name__ == 'DropTableOp':
                if op.table_name in PROTECTED_TABLES:
                    dangerous_ops.append(f"DROP TABLE {op.table_name}")

            # Check for index drops on protected tables
            elif hasattr(op, 'table_name') and op.__class__.__name__ == 'DropIndexOp':
                if op.table_name in PROTECTED_TABLES:
                    dangerous_ops.append(f"DROP INDEX {op.index_name} on {op.table_name}")

            # Check for column drops on protected tables
            elif hasattr(op, 'table_name') and op.__class__.__name__ == 'DropColumnOp':
                if op.table_name in PROTECTED_TABLES:
                    dangerous_ops.append(f"DROP COLUMN {op.column_name} from {op.table_name}")

        if dangerous_ops:
            print("\n" + "=" * 80)
            print("DANGEROUS MIGRATION DETECTED - BLOCKING AUTOGENERATE")
            print("=" * 80)
            print("\nThe following dangerous operations were detected:")
            for op in dangerous_ops:
                print(f"  - {op}")
            print("\nThis migration has been BLOCKED for safety.")
            print("\nIf you need to make these changes:")
            print("  1. Create a manual migration: alembic revision -m 'description'")
            print("  2. Manually edit the migration file")
            print("  3. Review carefully before applying")
            print("  4. Take a database backup first")
            print("=" * 80 + "\n")

            # Clear the directives to prevent migration creation
            directives[:] = []

def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        process_revision_directives=process_revision_directives,
    )
    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
            process_revision_directives=process_revision_directives,
        )
        with context.begin_transaction():
            context.run_migrations()

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()