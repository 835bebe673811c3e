import json
import re

from rest_framework import serializers

HHMM = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')


def _schedule(value):
    if isinstance(value, str):
        try:
            value = json.loads(value) if value.strip() else {}
        except ValueError:
            raise serializers.ValidationError('Schedule must be valid JSON.')
    if not isinstance(value, dict):
        raise serializers.ValidationError('Schedule must be a JSON object.')
    return value


class DoctorProfileSerializer(serializers.Serializer):
    fullName = serializers.CharField(required=False, allow_blank=True, max_length=255)
    contactInfo = serializers.CharField(required=False, allow_blank=True, max_length=255)
    specialization = serializers.CharField(required=False, max_length=100)
    location = serializers.CharField(required=False, allow_blank=True, max_length=255)
    schedule = serializers.JSONField(required=False)

    def validate_schedule(self, v):
        return _schedule(v)


class ScheduleSerializer(serializers.Serializer):
    schedule = serializers.JSONField()

    def validate_schedule(self, v):
        return _schedule(v)


class UnavailableSlotSerializer(serializers.Serializer):
    date = serializers.DateField()
    startTime = serializers.CharField()
    endTime = serializers.CharField()

    def validate(self, attrs):
        for key in ('startTime', 'endTime'):
            if not HHMM.match(attrs[key]):
                raise serializers.ValidationError({key: 'Use HH:MM.'})
        if attrs['startTime'] >= attrs['endTime']:
            raise serializers.ValidationError('startTime must be before endTime.')
        return attrs


class DoctorMessageSerializer(serializers.Serializer):
    patientId = serializers.IntegerField()
    appointmentId = serializers.IntegerField(required=False, allow_null=True)
    content = serializers.CharField(max_length=5000)


class InfoRequestSerializer(serializers.Serializer):
    patientId = serializers.IntegerField()
    requestText = serializers.CharField(max_length=5000)


class ReportQuerySerializer(serializers.Serializer):
    startDate = serializers.DateField()
    endDate = serializers.DateField()
    format = serializers.CharField(required=False, default='csv')

    def validate(self, attrs):
        if attrs['startDate'] > attrs['endDate']:
            raise serializers.ValidationError('startDate must not be after endDate.')
        return attrs
