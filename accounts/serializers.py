"""
Serializers for the account endpoints.
"""
from django.contrib.auth.models import User
from rest_framework import serializers
from core.models import Business


class BusinessSerializer(serializers.ModelSerializer):
    class Meta:
        model = Business
        fields = [
            "id",
            "name",
            "email",
            "industry",
            "website",
            "google_place_id",
            "yelp_business_id",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "is_active", "created_at", "updated_at"]


class UserSerializer(serializers.ModelSerializer):
    metadata = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "email", "first_name", "last_name", "metadata", "date_joined", "last_login"]
        read_only_fields = fields

    def get_metadata(self, obj):
        profile = getattr(obj, "profile", None)
        return profile.metadata if profile else {}


class SignUpSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)
    business_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    first_name = serializers.CharField(required=False, allow_blank=True, max_length=150)
    last_name = serializers.CharField(required=False, allow_blank=True, max_length=150)
    metadata = serializers.DictField(required=False, default=dict)


class SignInSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class UpdateProfileSerializer(serializers.Serializer):
    first_name = serializers.CharField(required=False, allow_blank=True, max_length=150)
    last_name = serializers.CharField(required=False, allow_blank=True, max_length=150)
    metadata = serializers.DictField(required=False)


class UpdatePasswordSerializer(serializers.Serializer):
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class TokenSerializer(serializers.Serializer):
    """Shape of the session returned by sign up / sign in"""
    access_token = serializers.CharField(source="token")
    token_type = serializers.SerializerMethodField()
    expires_at = serializers.DateTimeField()

    def get_token_type(self, obj):
        return "bearer"
