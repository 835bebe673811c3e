"""
URL mappings for the appointment system API.

Trailing slashes are deliberately omitted.  Routes are named so tests and
clients can ``reverse()`` them.
"""
from django.urls import path, include

from .auth_views import change_password_view, jwt_logout_view, jwt_refresh_view, login_view, register_view
from .views import admin as admin_views
from .views import appointments, doctors, feedback, health, notifications, patients, prescriptions
from .views.dashboard import admin_dashboard


urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),

    # Authentication
    path('api/auth/register', register_view, name='register'),
    path('api/auth/login', login_view, name='login'),
    path('api/auth/refresh', jwt_refresh_view, name='token-refresh'),
    path('api/auth/logout', jwt_logout_view, name='logout'),
    path('api/user/change-password', change_password_view, name='change-password'),

    # Appointments (patients)
    path('api/appointments/book', appointments.book_appointment, name='appointment-book'),
    path('api/appointments/my', appointments.my_appointments, name='appointment-my'),
    path('api/appointments/filter', appointments.filter_appointments, name='appointment-filter'),
    path('api/appointments/<int:pk>/cancel', appointments.cancel_appointment, name='appointment-cancel'),
    path('api/appointments/<int:pk>/reschedule', appointments.reschedule_appointment,
         name='appointment-reschedule'),
    path('api/appointments/<int:pk>/confirm', appointments.confirm_appointment, name='appointment-confirm'),

    # Doctor workspace
    path('api/doctor/profile', doctors.doctor_profile, name='doctor-profile'),
    path('api/doctor/appointments', doctors.doctor_appointments, name='doctor-appointments'),
    path('api/doctor/appointments/report', doctors.doctor_report, name='doctor-report'),
    path('api/doctor/appointments/<int:pk>/cancel', doctors.doctor_cancel_appointment,
         name='doctor-appointment-cancel'),
    path('api/doctor/appointments/<int:pk>/complete', doctors.doctor_complete_appointment,
         name='doctor-appointment-complete'),
    path('api/doctor/appointments/<int:pk>/reschedule', doctors.doctor_reschedule_appointment,
         name='doctor-appointment-reschedule'),
    path('api/doctor/appointments/<int:pk>/scheduled', doctors.doctor_mark_scheduled,
         name='doctor-appointment-scheduled'),
    path('api/doctor/patients', doctors.doctor_patients, name='doctor-patients'),
    path('api/doctor/patients/<int:patient_id>/appointments', doctors.doctor_patient_appointments,
         name='doctor-patient-appointments'),
    path('api/doctor/unavailable-slots', doctors.unavailable_slots, name='doctor-slots'),
    path('api/doctor/unavailable-slots/<int:pk>', doctors.delete_unavailable_slot, name='doctor-slot-delete'),
    path('api/doctor/messages/send', doctors.doctor_send_message, name='doctor-message-send'),
    path('api/doctor/messages/<int:patient_id>', doctors.doctor_messages, name='doctor-messages'),
    path('api/doctor/medical-info-requests', doctors.doctor_info_requests, name='doctor-info-requests'),
    path('api/doctor/medical-info-requests/<int:pk>/cancel', doctors.doctor_cancel_info_request,
         name='doctor-info-request-cancel'),

    # Public doctor lookups
    path('api/doctors/search', doctors.search_doctors, name='doctor-search'),
    path('api/doctors/<int:pk>', doctors.doctor_public_profile, name='doctor-detail'),
    path('api/doctors/<int:pk>/schedule', doctors.doctor_public_schedule, name='doctor-schedule'),
    path('api/doctors/<int:pk>/appointments', doctors.doctor_booked_times, name='doctor-booked-times'),

    # Patients
    path('api/patient/profile', patients.patient_profile, name='patient-profile'),
    path('api/patient/appointments', patients.patient_appointments, name='patient-appointments'),
    path('api/patient/messages/send', patients.patient_send_message, name='patient-message-send'),
    path('api/patient/messages/<int:doctor_id>', patients.patient_messages, name='patient-messages'),
    path('api/patient/medical-info-requests', patients.patient_info_requests, name='patient-info-requests'),
    path('api/patient/medical-info-requests/<int:pk>/respond', patients.respond_info_request,
         name='patient-info-request-respond'),
    path('api/patients/<int:patient_id>/medical-history/approve', patients.approve_medical_history,
         name='medical-history-approve'),
    path('api/patients/<int:patient_id>/medical-history/reject', patients.reject_medical_history,
         name='medical-history-reject'),

    # Prescriptions
    path('api/prescriptions/issue', prescriptions.issue_prescription, name='prescription-issue'),
    path('api/prescriptions/my', prescriptions.my_prescriptions, name='prescription-my'),
    path('api/prescriptions/doctor', prescriptions.doctor_prescriptions, name='prescription-doctor'),
    path('api/prescriptions/<int:pk>', prescriptions.prescription_detail, name='prescription-detail'),
    path('api/prescriptions/<int:pk>/renew', prescriptions.request_renewal, name='prescription-renew'),
    path('api/prescriptions/<int:pk>/approve-renewal', prescriptions.approve_renewal,
         name='prescription-approve-renewal'),
    path('api/prescriptions/<int:pk>/reject-renewal', prescriptions.reject_renewal,
         name='prescription-reject-renewal'),
    path('api/prescriptions/<int:pk>/send-to-pharmacy', prescriptions.send_to_pharmacy,
         name='prescription-send-to-pharmacy'),

    # Feedback
    path('api/feedback', feedback.submit_feedback, name='feedback-submit'),
    path('api/feedback/my', feedback.my_feedback, name='feedback-my'),
    path('api/feedback/doctor/<int:doctor_id>', feedback.doctor_feedback, name='feedback-doctor'),
    path('api/feedback/appointment/<int:appointment_id>', feedback.appointment_feedback,
         name='feedback-appointment'),

    # Notifications
    path('api/notifications/my', notifications.my_notifications, name='notification-my'),
    path('api/notifications/broadcast', notifications.broadcast_notification, name='notification-broadcast'),
    path('api/notifications/<int:pk>/read', notifications.mark_notification_read, name='notification-read'),

    # Administration
    path('api/admin/dashboard', admin_dashboard, name='admin-dashboard'),
    path('api/admin/profile', admin_views.admin_profile, name='admin-profile'),
    path('api/admin/users', admin_views.users, name='admin-users'),
    path('api/admin/users/<int:pk>', admin_views.delete_user, name='admin-user-delete'),
    path('api/admin/users/<int:pk>/name', admin_views.rename_user, name='admin-user-name'),
    path('api/admin/users/<int:pk>/role', admin_views.change_user_role, name='admin-user-role'),
    path('api/admin/users/<int:pk>/deactivate', admin_views.deactivate_user, name='admin-user-deactivate'),
    path('api/admin/users/<int:pk>/activate', admin_views.activate_user, name='admin-user-activate'),
    path('api/admin/doctors', admin_views.list_doctors, name='admin-doctors'),
    path('api/admin/patients', admin_views.list_patients, name='admin-patients'),
    path('api/admin/doctor-schedule/<int:doctor_id>', admin_views.doctor_schedule, name='admin-doctor-schedule'),
    path('api/admin/appointments', admin_views.appointments, name='admin-appointments'),
    path('api/admin/appointments/all', admin_views.delete_all_appointments, name='admin-appointments-purge'),
    path('api/admin/appointments/<int:pk>/cancel', admin_views.cancel_appointment,
         name='admin-appointment-cancel'),
    path('api/admin/appointments/<int:pk>/status', admin_views.appointment_status,
         name='admin-appointment-status'),
    path('api/admin/appointments/<int:pk>/reschedule', admin_views.reschedule_appointment,
         name='admin-appointment-reschedule'),
    path('api/admin/prescriptions/all', admin_views.delete_all_prescriptions, name='admin-prescriptions-purge'),
    path('api/admin/notifications/all', admin_views.delete_all_notifications, name='admin-notifications-purge'),
    path('api/admin/export/appointments', admin_views.export_appointments, name='admin-export-appointments'),
    path('api/admin/export/users', admin_views.export_users, name='admin-export-users'),
    path('api/admin/system-logs', admin_views.system_logs, name='admin-system-logs'),
]
