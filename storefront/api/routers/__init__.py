from . import auth
from . import cart
from . import orders
from . import payments
from . import products

__all__ = [
    "auth",
    "cart",
    "orders",
    "payments",
    "products",
]
