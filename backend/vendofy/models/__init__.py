from .users import User
from .catalog import Product, AdminProductPricing, CustomerPricing
from .orders import Order, OrderItem
from .settings import SystemSettings, PendingSettingsChange
from .security import RevokedToken, EmailVerificationToken, PasswordResetToken

__all__ = [
    'User',
    'Product', 'AdminProductPricing', 'CustomerPricing',
    'Order', 'OrderItem',
    'SystemSettings', 'PendingSettingsChange',
    'RevokedToken', 'EmailVerificationToken', 'PasswordResetToken',
]
