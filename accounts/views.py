"""
Account endpoints under /api/v1/auth/.
"""
import logging

from django.contrib.auth import logout
from django.core.exceptions import ValidationError as DjangoValidationError
from drf_spectacular.utils import extend_schema, OpenApiExample
from rest_framework import serializers, status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle

from . import services
from .models import AccessToken
from .serializers import (
    BusinessSerializer,
    SignInSerializer,
    SignUpSerializer,
    TokenSerializer,
    UpdatePasswordSerializer,
    UpdateProfileSerializer,
    UserSerializer,
)

logger = logging.getLogger(__name__)


def _session(user, business, token):
    return {
        "user": UserSerializer(user).data,
        "business": BusinessSerializer(business).data if business else None,
        "session": TokenSerializer(token).data if token else None,
    }


def _current_token(request):
    return request.auth if isinstance(request.auth, AccessToken) else None


def _password_error(exc):
    return serializers.ValidationError({"password": list(exc.messages)})


@extend_schema(
    tags=["auth"],
    request=SignUpSerializer,
    description="Create an account and its business. Returns a bearer token.",
    examples=[
        OpenApiExample(
            name="sign_up_example",
            value={
                "email": "owner@example.com",
                "password": "a-long-passphrase",
                "business_name": "Corner Coffee",
            },
            request_only=True,
        )
    ],
)
@api_view(["POST"])
@permission_classes([AllowAny])
@throttle_classes([AnonRateThrottle])
def sign_up(request):
    serializer = SignUpSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    metadata = dict(data.get("metadata") or {})
    for field in ("first_name", "last_name"):
        if data.get(field):
            metadata[field] = data[field]

    try:
        user, business, token = services.sign_up(
            data["email"],
            data["password"],
            metadata=metadata,
            business_name=data.get("business_name") or None,
        )
    except services.AccountError as e:
        return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except DjangoValidationError as e:
        raise _password_error(e)

    return Response(_session(user, business, token), status=status.HTTP_201_CREATED)


@extend_schema(tags=["auth"], request=SignInSerializer, description="Sign in with email and password")
@api_view(["POST"])
@permission_classes([AllowAny])
@throttle_classes([AnonRateThrottle])
def sign_in(request):
    serializer = SignInSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        user, token = services.sign_in(
            request._request,
            serializer.validated_data["email"],
            serializer.validated_data["password"],
        )
    except services.AccountError as e:
        return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(_session(user, user.business, token))


@extend_schema(tags=["auth"], request=None, description="Revoke the current token or end the session")
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def sign_out(request):
    token = _current_token(request)
    services.sign_out(request.user, token)
    if token is None:
        logout(request._request)
    return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(tags=["auth"], description="The signed-in user, profile metadata and business")
@api_view(["GET"])
@permission_classes([IsAuthenticated])
def current_user(request):
    business = services.ensure_business(request.user)
    return Response({
        "user": UserSerializer(request.user).data,
        "business": BusinessSerializer(business).data,
    })


@extend_schema(tags=["auth"], request=UpdateProfileSerializer, description="Update name and profile metadata")
@api_view(["PATCH"])
@permission_classes([IsAuthenticated])
def update_profile(request):
    serializer = UpdateProfileSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = services.update_profile(request.user, **serializer.validated_data)
    return Response(UserSerializer(user).data)


@extend_schema(
    tags=["auth"],
    request=UpdatePasswordSerializer,
    description="Change password. Every other token is revoked.",
)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def update_password(request):
    serializer = UpdatePasswordSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        services.update_password(
            request.user,
            serializer.validated_data["password"],
            current_token=_current_token(request),
        )
    except DjangoValidationError as e:
        raise _password_error(e)
    return Response({"success": True})


@extend_schema(
    tags=["auth"],
    request=None,
    description="Cancel billing and permanently delete the account, business, widgets and reviews",
)
@api_view(["DELETE"])
@permission_classes([IsAuthenticated])
def delete_account(request):
    services.delete_account(request.user)
    return Response(status=status.HTTP_204_NO_CONTENT)
