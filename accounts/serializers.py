"""Serializers for identity records."""
from __future__ import annotations

from rest_framework import serializers

from .models import Team, TeamMember, User, UserRole


class UserSerializer(serializers.ModelSerializer):
    role = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "display_name",
            "role",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class RoleField(serializers.CharField):
    """Accepts role names case-insensitively, including legacy aliases."""

    def to_internal_value(self, data):
        value = UserRole.normalize(super().to_internal_value(data))
        if value not in dict(UserRole.ROLE_CHOICES):
            raise serializers.ValidationError(f'"{data}" is not a valid role.')
        return value


class UserWriteSerializer(serializers.Serializer):
    email = serializers.EmailField(required=False)
    display_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    role = RoleField(required=False)
    is_active = serializers.BooleanField(required=False)


class UserCreateSerializer(UserWriteSerializer):
    email = serializers.EmailField()
    password = serializers.CharField(required=False, write_only=True, allow_blank=True)


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)


class TeamSerializer(serializers.ModelSerializer):
    member_count = serializers.SerializerMethodField()

    class Meta:
        model = Team
        fields = ["id", "name", "category", "member_count", "created_at", "updated_at"]
        read_only_fields = ["id", "member_count", "created_at", "updated_at"]

    def get_member_count(self, obj: Team) -> int:
        return obj.memberships.count()


class TeamMemberSerializer(serializers.ModelSerializer):
    team_id = serializers.PrimaryKeyRelatedField(queryset=Team.objects.all(), source="team")
    user_id = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), source="user")
    user_email = serializers.EmailField(source="user.email", read_only=True)
    user_display_name = serializers.CharField(source="user.display_name", read_only=True)

    class Meta:
        model = TeamMember
        fields = ["id", "team_id", "user_id", "user_email", "user_display_name", "role", "created_at"]
        read_only_fields = ["id", "user_email", "user_display_name", "created_at"]

    def update(self, instance: TeamMember, validated_data):
        # Membership updates only change the role.
        validated_data.pop("team", None)
        validated_data.pop("user", None)
        return super().update(instance, validated_data)
