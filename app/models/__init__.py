# Import all models here so they can be imported elsewhere with a single import
from app.database import Base
from app.models.program import Program

__all__ = ['Base', 'Program']
