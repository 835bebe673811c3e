from rest_framework import serializers


class PatientProfileSerializer(serializers.Serializer):
    fullName = serializers.CharField(required=False, allow_blank=True, max_length=255)
    contactInfo = serializers.CharField(required=False, allow_blank=True, max_length=255)
    medicalHistory = serializers.CharField(required=False, allow_blank=True)


class PatientMessageSerializer(serializers.Serializer):
    doctorId = serializers.IntegerField()
    appointmentId = serializers.IntegerField(required=False, allow_null=True)
    content = serializers.CharField(max_length=5000)


class InfoResponseSerializer(serializers.Serializer):
    responseText = serializers.CharField(max_length=5000)
    attachmentUrl = serializers.URLField(required=False, allow_blank=True, allow_null=True)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class FeedbackSerializer(serializers.Serializer):
    appointmentId = serializers.IntegerField()
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comments = serializers.CharField(required=False, allow_blank=True, default='', max_length=2000)
