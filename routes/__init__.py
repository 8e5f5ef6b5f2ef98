from .admin_routes import router as admin_routes
from .auth_routes import router as auth_routes
from .book_routes import router as book_routes
from .conversation_routes import router as conversation_routes
from .exchange_routes import router as exchange_routes

__all__ = [
    'admin_routes',
    'auth_routes',
    'book_routes',
    'conversation_routes',
    'exchange_routes',
]
