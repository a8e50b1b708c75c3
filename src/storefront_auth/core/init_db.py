"""Initialize the database tables."""

from storefront_auth.core.database import build_engine, create_tables
from storefront_auth.core.dependencies import get_settings

if __name__ == "__main__":
    print("Creating database tables...")
    create_tables(build_engine(get_settings().database_url))
    print("Tables created successfully!")
