from rest_framework import serializers

from clinic.models import Appointment


class BookAppointmentSerializer(serializers.Serializer):
    doctorId = serializers.IntegerField()
    appointmentDateTime = serializers.DateTimeField()
    isTelehealth = serializers.BooleanField(required=False, default=False)


class RescheduleSerializer(serializers.Serializer):
    newDateTime = serializers.DateTimeField()


class AdminCancelSerializer(serializers.Serializer):
    justification = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class StatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Appointment.STATUS_CHOICES)


class AppointmentFilterSerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    doctorId = serializers.IntegerField(required=False)
    status = serializers.CharField(required=False, allow_blank=True)
