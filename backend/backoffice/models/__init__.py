from .people import Role, Permission, RolePermission, Employee, SessionToken
from .catalog import Category, Item, StockLot, StockOperation, StockMovement
from .members import Member, MemberPointLog
from .sales import Coupon, Sale, SaleItem, SaleCardPayment, SaleCoupon
from .ledgers import CommissionLog, EmployeeSalary
from .system import CodeSequence, Notification

__all__ = [
    'Role', 'Permission', 'RolePermission', 'Employee', 'SessionToken',
    'Category', 'Item', 'StockLot', 'StockOperation', 'StockMovement',
    'Member', 'MemberPointLog',
    'Coupon', 'Sale', 'SaleItem', 'SaleCardPayment', 'SaleCoupon',
    'CommissionLog', 'EmployeeSalary',
    'CodeSequence', 'Notification',
]
