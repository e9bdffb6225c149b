# Routers package
from . import auth_router
from . import admin_router
from . import appointments_router
from . import doctors_router
from . import patients_router

__all__ = [
    "auth_router",
    "admin_router",
    "appointments_router",
    "doctors_router",
    "patients_router",
]
