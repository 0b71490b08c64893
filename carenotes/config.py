import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Strict level order for this deployment. The hierarchy engine itself is
# type-agnostic; only the API layer enforces this.
HIERARCHY_LEVELS = ("organisation", "team", "client", "episode")


def _env_flag(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    DATABASE_URL = os.environ.get(
        "CARENOTES_DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "healthcare.db"),
    )
    SQL_ECHO = _env_flag("CARENOTES_SQL_ECHO")

    # Seed data (optionally Fernet-encrypted, see the encrypt-seed command)
    SEED_FILE = os.environ.get("CARENOTES_SEED_FILE", os.path.join(BASE_DIR, "seed.json"))
    KEY_FILE = os.environ.get("CARENOTES_KEY_FILE", os.path.join(BASE_DIR, "secret.key"))

    HIERARCHY_LEVELS = HIERARCHY_LEVELS


def level_route(level):
    """'organisation' -> 'organisations', used for /api/<level> routes."""
    return level + "s"


def level_from_route(route_name, levels=HIERARCHY_LEVELS):
    for level in levels:
        if level_route(level) == route_name:
            return level
    return None
