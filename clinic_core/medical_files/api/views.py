# clinic_core/medical_files/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from clinic_core.common.api.exceptions import BadRequestError
from clinic_core.common.api.pagination import paginate
from clinic_core.iam.directory import get_request_actor
from clinic_core.medical_files.api.serializers import MedicalFileCreateSerializer, MedicalFileSerializer
from clinic_core.medical_files.models import MedicalFile
from clinic_core.medical_files.permissions import MedicalFilePermission
from clinic_core.medical_files.services import MedicalFileService


class MedicalFileViewSet(viewsets.GenericViewSet):
    """
    Medical file descriptors.
    - list: by patient (doctor/admin) or by laborant (admin)
    - mine / uploads: the caller's own files
    - DELETE tombstones, purge removes the row (admin)
    """
    permission_classes = [MedicalFilePermission]
    serializer_class = MedicalFileSerializer
    queryset = MedicalFile.objects.none()

    @extend_schema(
        tags=["Medical files"],
        responses={200: MedicalFileSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="patient_id", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="laborant_id", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY, required=False,
                             description="Admin only: files uploaded by this laborant."),
        ],
    )
    def list(self, request):
        actor = get_request_actor(request)
        patient_id = request.query_params.get("patient_id")
        laborant_id = request.query_params.get("laborant_id")

        if patient_id:
            qs = MedicalFileService.list_for_patient(actor=actor, patient_id=patient_id)
        elif laborant_id:
            qs = MedicalFileService.list_by_laborant(actor=actor, laborant_id=laborant_id)
        else:
            raise BadRequestError("patient_id or laborant_id is required.", context={"params": ["patient_id", "laborant_id"]})

        return paginate(request, qs, MedicalFileSerializer)

    @extend_schema(tags=["Medical files"], responses={200: MedicalFileSerializer})
    def retrieve(self, request, pk=None):
        medical_file = MedicalFileService.get_file(actor=get_request_actor(request), file_id=pk)
        return Response(MedicalFileSerializer(medical_file).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Medical files"], request=MedicalFileCreateSerializer, responses={201: MedicalFileSerializer})
    def create(self, request):
        ser = MedicalFileCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        medical_file = MedicalFileService.register_upload(
            actor=get_request_actor(request),
            patient_id=data["patient_id"],
            file_name=data["file_name"],
            file_url=data["file_url"],
            file_type=data["file_type"],
            file_size_kb=data["file_size_kb"],
            test_name=data["test_name"],
            test_date=data["test_date"],
            description=data.get("description"),
            request_id=data.get("request_id"),
        )
        return Response(MedicalFileSerializer(medical_file).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Medical files"], responses={204: None})
    def destroy(self, request, pk=None):
        MedicalFileService.soft_delete(actor=get_request_actor(request), file_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Medical files"], responses={200: MedicalFileSerializer(many=True)})
    @action(detail=False, methods=["get"])
    def mine(self, request):
        qs = MedicalFileService.list_mine(actor=get_request_actor(request))
        return paginate(request, qs, MedicalFileSerializer)

    @extend_schema(tags=["Medical files"], responses={200: MedicalFileSerializer(many=True)})
    @action(detail=False, methods=["get"])
    def uploads(self, request):
        qs = MedicalFileService.list_uploads(actor=get_request_actor(request))
        return paginate(request, qs, MedicalFileSerializer)

    @extend_schema(tags=["Medical files"], request=None, responses={204: None})
    @action(detail=True, methods=["post"])
    def purge(self, request, pk=None):
        MedicalFileService.hard_delete(actor=get_request_actor(request), file_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)
