"""
Django admin registrations for the clinic models.

Lets staff inspect appointments, prescriptions and the system log through
the ``/admin/`` site alongside the API.
"""

from django.contrib import admin

from .models import (
    AdminProfile,
    Appointment,
    DoctorProfile,
    DoctorUnavailableSlot,
    Feedback,
    MedicalInfoRequest,
    Message,
    Notification,
    PatientProfile,
    Prescription,
    SystemLog,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'full_name', 'role', 'is_active', 'is_staff')
    list_filter = ('role', 'is_active')
    search_fields = ('email', 'full_name')


@admin.register(PatientProfile)
class PatientProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'medical_history_approval_status')
    list_filter = ('medical_history_approval_status',)
    search_fields = ('user__email', 'user__full_name')


@admin.register(DoctorProfile)
class DoctorProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'specialization', 'location')
    list_filter = ('specialization',)
    search_fields = ('user__email', 'user__full_name', 'specialization')


admin.site.register(AdminProfile)


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('reference_number', 'patient', 'doctor', 'appointment_datetime', 'status', 'is_telehealth')
    list_filter = ('status', 'is_telehealth')
    search_fields = ('reference_number', 'patient__user__email', 'doctor__user__email')
    date_hierarchy = 'appointment_datetime'


@admin.register(DoctorUnavailableSlot)
class DoctorUnavailableSlotAdmin(admin.ModelAdmin):
    list_display = ('doctor', 'date', 'start_time', 'end_time')
    list_filter = ('date',)


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('medication_name', 'patient', 'doctor', 'status', 'renewal_status', 'expiry_date')
    list_filter = ('status', 'renewal_status', 'sent_to_pharmacy')
    search_fields = ('medication_name', 'patient__user__email')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'appointment', 'prescription', 'is_read', 'created_at')
    list_filter = ('is_read',)


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ('sender', 'receiver', 'sent_at', 'is_read')


@admin.register(Feedback)
class FeedbackAdmin(admin.ModelAdmin):
    list_display = ('appointment', 'patient', 'rating', 'created_at')
    list_filter = ('rating',)


@admin.register(MedicalInfoRequest)
class MedicalInfoRequestAdmin(admin.ModelAdmin):
    list_display = ('doctor', 'patient', 'status', 'created_at', 'responded_at')
    list_filter = ('status',)


@admin.register(SystemLog)
class SystemLogAdmin(admin.ModelAdmin):
    list_display = ('timestamp', 'user', 'action', 'object_type', 'object_id')
    list_filter = ('action',)
    search_fields = ('action', 'user__email')
    readonly_fields = ('timestamp',)
