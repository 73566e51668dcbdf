# clinic_core/api/urls.py
from __future__ import annotations

from rest_framework.routers import DefaultRouter

from clinic_core.audit.api.views import AuditEventViewSet
from clinic_core.lab_requests.api.views import LabRequestViewSet
from clinic_core.medical_files.api.views import MedicalFileViewSet

router = DefaultRouter()

router.register(r"lab-requests", LabRequestViewSet, basename="lab-requests")
router.register(r"medical-files", MedicalFileViewSet, basename="medical-files")
router.register(r"audit/events", AuditEventViewSet, basename="audit-events")

urlpatterns = router.urls
