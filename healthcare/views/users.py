"""
User administration endpoints.

Listing and lookup are open to managers and staff; creating, changing and
deleting accounts is reserved to managers.  Any user may read their own
account.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated

from healthcare.envelope import ok
from healthcare.permissions import IsManager, IsManagerOrStaff, check
from healthcare.serializers.users import UserSerializer
from healthcare.services import users as accounts


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsManagerOrStaff])
def users(request):
    if request.method == 'POST':
        check(request, IsManager)
        user = accounts.create_user(request.user.pk, request.data)
        return ok({'user': UserSerializer(user).data}, message='User created successfully', status=201)

    items, pagination = accounts.list_users(request.query_params)
    return ok({'users': UserSerializer(items, many=True).data, 'pagination': pagination})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me(request):
    return ok({'user': UserSerializer(accounts.get_user(request.user.pk)).data})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def user_detail(request, pk: int):
    if request.method == 'GET':
        if request.user.pk != pk and not IsManagerOrStaff().has_permission(request, None):
            raise PermissionDenied('Access denied')
        return ok({'user': UserSerializer(accounts.get_user(pk)).data})

    check(request, IsManager)
    if request.method == 'DELETE':
        accounts.delete_user(request.user.pk, pk)
        return ok(message='User deleted successfully')
    user = accounts.update_user(request.user.pk, pk, request.data)
    return ok({'user': UserSerializer(user).data}, message='User updated successfully')
