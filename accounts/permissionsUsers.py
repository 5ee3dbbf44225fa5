# permissions.py
from rest_framework.permissions import BasePermission
from .models import Role


class IsConsignor(BasePermission):
    message = "Only consignors can do this."

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role == Role.CONSIGNOR


class IsDriver(BasePermission):
    message = "Only drivers can do this."

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role == Role.DRIVER
