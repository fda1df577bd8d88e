import logging
from logging.config import fileConfig

from alembic import context
from skl.app import create_app, db

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)
logger = logging.getLogger("alembic.env")

app = create_app()

with app.app_context():
    target_metadata = db.metadata


def _database_url() -> str:
    return config.get_main_option("sqlalchemy.url") or app.config["SQLALCHEMY_DATABASE_URI"]


def run_migrations_offline() -> None:
    url = _database_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=url.startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    with app.app_context():
        with db.engine.connect() as connection:
            # SQLite cannot ALTER columns in place; settings/grades changes go through batch mode
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                compare_type=True,
                render_as_batch=connection.dialect.name == "sqlite",
            )
            logger.info("Migrating %s", connection.engine.url.render_as_string(hide_password=True))

            with context.begin_transaction():
                context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
