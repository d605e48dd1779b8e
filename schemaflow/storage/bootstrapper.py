import logging

logger = logging.getLogger(__name__)


def ensure_table(client) -> bool:
    """
    Create the destination table (Id + Payload) if it is missing.

    Safe to call concurrently: the create statement is IF NOT EXISTS and
    the clients treat "already exists" as success.

    Args:
        client: Connected MySQLClient / SQLiteClient

    Returns:
        True if this call issued the create, False if the table was already there
    """
    if client.table_exists():
        return False

    client.create_table()
    logger.info("Ensured table '%s' exists", client.table_name)
    return True
