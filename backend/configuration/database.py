from functools import lru_cache
from azure.cosmos import CosmosClient, DatabaseProxy
from azure.identity import DefaultAzureCredential
from backend.configuration.config import Config

@lru_cache(maxsize=1)
def get_database() -> DatabaseProxy:
    """Create the Cosmos client on first use and return the database reference."""
    client = CosmosClient(
        url=Config.COSMOSDB_ENDPOINT,
        credential=DefaultAzureCredential()
    )
    return client.get_database_client(Config.COSMOSDB_DATABASE_NAME)

# Dictionary to store container references
containers = {}

def get_container(container_key: str):
    """
    Provide the CosmosDB container client
    Args:
        container_key (str): Key of the container to get (users, purchases, etc.)
    Returns:
        Container client for the specified container
    """
    if container_key not in Config.COSMOSDB_CONTAINER_NAME:
        raise ValueError(f"Container {container_key} not found")
    if container_key not in containers:
        containers[container_key] = get_database().get_container_client(
            Config.COSMOSDB_CONTAINER_NAME[container_key]
        )
    return containers[container_key]

# FastAPI dependencies, one per container so tests can override them
def get_mailsettings_db():
    return get_container("mailsettings")

def get_adminlogs_db():
    return get_container("adminlogs")
