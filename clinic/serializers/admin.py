from rest_framework import serializers

from clinic.models import User


class CreateUserSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField()
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES)
    fullName = serializers.CharField(required=False, allow_blank=True, default='', max_length=255)
    specialization = serializers.CharField(required=False, allow_blank=True, max_length=100)


class NameSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)


class RoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES)


class AdminProfileSerializer(serializers.Serializer):
    fullName = serializers.CharField(allow_blank=True, max_length=255)
    contactInfo = serializers.CharField(required=False, allow_blank=True, max_length=255)


class BroadcastSerializer(serializers.Serializer):
    message = serializers.CharField(max_length=2000)
    role = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_role(self, v):
        if v and v.lower() not in dict(User.ROLE_CHOICES):
            raise serializers.ValidationError('Role not found')
        return v.lower() if v else None
