"""
Persistence layer. `storage` is the process-wide DBStorage; the application
factory points it at the configured database before first use.
"""
from models.db_storage import DBStorage

storage = DBStorage()
