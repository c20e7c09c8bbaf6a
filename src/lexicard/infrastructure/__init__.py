# Infrastructure Package
from .database import Database
from .repositories import SqlAlchemyUnitOfWork, SqlCardCatalog

__all__ = ["Database", "SqlAlchemyUnitOfWork", "SqlCardCatalog"]
