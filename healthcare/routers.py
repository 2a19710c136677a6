"""
URL mappings for the hospital management API.

Trailing slashes are omitted (``APPEND_SLASH = False``).  Fixed path
segments such as ``availability`` and ``specializations`` are listed
before the ``<int:pk>`` routes they would otherwise shadow.
"""
from django.urls import include, path

from .auth_views import jwt_logout_view, jwt_refresh_view, login_view
from .views import analytics, appointments, health, hospitals, medical_records, payments, users

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),

    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout'),

    # Medical records
    path('api/medical-records', medical_records.medical_records, name='medical_records'),
    path('api/medical-records/<int:pk>', medical_records.medical_record_detail, name='medical_record_detail'),
    path('api/medical-records/<int:pk>/attachments', medical_records.record_attachments,
         name='record_attachments'),
    path('api/medical-records/<int:pk>/progress-notes', medical_records.record_progress_notes,
         name='record_progress_notes'),
    path('api/medical-records/<int:pk>/access-log', medical_records.record_access_log, name='record_access_log'),
    path('api/medical-records/<int:pk>/export', medical_records.record_export, name='record_export'),

    # Payments
    path('api/payments', payments.payments, name='payments'),
    path('api/payments/<int:pk>', payments.payment_detail, name='payment_detail'),
    path('api/payments/<int:pk>/items', payments.payment_items, name='payment_items'),
    path('api/payments/<int:pk>/items/<int:item_id>', payments.payment_item_detail, name='payment_item_detail'),
    path('api/payments/<int:pk>/receipt', payments.payment_receipt, name='payment_receipt'),
    path('api/payments/<int:pk>/refund', payments.payment_refund, name='payment_refund'),

    # Appointments
    path('api/appointments', appointments.appointments, name='appointments'),
    path('api/appointments/availability/<int:doctor_id>', appointments.doctor_availability,
         name='doctor_availability'),
    path('api/appointments/<int:pk>', appointments.appointment_detail, name='appointment_detail'),
    path('api/appointments/<int:pk>/cancel', appointments.appointment_cancel, name='appointment_cancel'),

    # Users
    path('api/users', users.users, name='users'),
    path('api/users/me', users.me, name='users_me'),
    path('api/users/<int:pk>', users.user_detail, name='user_detail'),

    # Hospitals
    path('api/hospitals', hospitals.hospitals, name='hospitals'),
    path('api/hospitals/specializations', hospitals.specializations, name='specializations'),
    path('api/hospitals/<int:pk>', hospitals.hospital_detail, name='hospital_detail'),
    path('api/hospitals/<int:pk>/doctors', hospitals.hospital_doctors, name='hospital_doctors'),

    # Analytics
    path('api/analytics/dashboard', analytics.dashboard, name='analytics_dashboard'),
    path('api/analytics/appointments', analytics.appointment_report, name='analytics_appointments'),
    path('api/analytics/financial', analytics.financial_report, name='analytics_financial'),
    path('api/analytics/patients', analytics.patient_report, name='analytics_patients'),
    path('api/analytics/export', analytics.export, name='analytics_export'),
]
