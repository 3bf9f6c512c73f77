import os
import logging
from pymongo import MongoClient, ASCENDING
from pymongo.server_api import ServerApi
from pymongo.database import Database
from pymongo.collection import Collection
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_DB_NAME = "task-manager-api"


class DatabaseClient:
    """
    A singleton class to manage the MongoDB client connection.
    """
    client: MongoClient | None = None
    db: Database | None = None

    def connect(self):
        """
        Establishes the connection to MongoDB.
        """
        uri = os.getenv("MONGODB_URL")
        if not uri:
            raise Exception("MONGODB_URL not found in environment variables")

        if self.client is None:
            client = MongoClient(uri, server_api=ServerApi('1'))
            try:
                client.admin.command('ping')
                logging.info("Connected to MongoDB.")
            except Exception as e:
                logging.error(f"Failed to connect to MongoDB: {e}")
                client.close()
                raise
            self.use(client)

    def use(self, client: MongoClient, db_name: str | None = None):
        """
        Binds an already constructed client and prepares the indexes
        the application relies on.
        """
        self.client = client
        self.db = client[db_name or os.getenv("MONGODB_DB", DEFAULT_DB_NAME)]
        # Email uniqueness lives in the storage layer
        self.db["users"].create_index([("email", ASCENDING)], unique=True)
        self.db["tasks"].create_index([("owner", ASCENDING)])

    def get_database(self) -> Database:
        """
        Returns the database instance.
        """
        if self.db is None:
            self.connect()
        return self.db

    def get_user_collection(self) -> Collection:
        return self.get_database()["users"]

    def get_task_collection(self) -> Collection:
        return self.get_database()["tasks"]

    def close(self):
        """
        Closes the MongoDB connection.
        """
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logging.info("MongoDB connection closed.")


# Create a single instance of the database client
# This instance will be shared across the application
db_client = DatabaseClient()

# Helper functions to easily access database and collections in your routes
def get_database() -> Database:
    """Get the database instance"""
    return db_client.get_database()

def get_user_collection() -> Collection:
    """Get the users collection"""
    return db_client.get_user_collection()

def get_task_collection() -> Collection:
    """Get the tasks collection"""
    return db_client.get_task_collection()
