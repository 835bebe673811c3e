from rest_framework import serializers


class IssuePrescriptionSerializer(serializers.Serializer):
    patientId = serializers.IntegerField()
    appointmentId = serializers.IntegerField()
    medicationName = serializers.CharField(max_length=200)
    dosage = serializers.CharField(max_length=100)
    instructions = serializers.CharField(required=False, allow_blank=True, default='')
    isRenewable = serializers.BooleanField(required=False, default=False)
    refillsRemaining = serializers.IntegerField(required=False, min_value=0, default=0)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    expiryDate = serializers.DateTimeField(required=False, allow_null=True)


class PharmacySerializer(serializers.Serializer):
    pharmacyEmail = serializers.EmailField(required=False, allow_blank=True, default='')


class RejectRenewalSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=2000)
