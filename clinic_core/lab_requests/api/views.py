# clinic_core/lab_requests/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from clinic_core.common.api.pagination import paginate
from clinic_core.iam.directory import get_request_actor
from clinic_core.lab_requests.api.serializers import (
    LabRequestAssignSerializer,
    LabRequestConfirmSerializer,
    LabRequestCreateSerializer,
    LabRequestSerializer,
)
from clinic_core.lab_requests.models import LabRequest
from clinic_core.lab_requests.permissions import LabRequestPermission
from clinic_core.lab_requests.services import LabRequestService


class LabRequestViewSet(viewsets.GenericViewSet):
    """
    Thin API layer over LabRequestService:
    - body validation via serializers
    - role gate via LabRequestPermission
    - ownership and state rules live in the service
    """

    permission_classes = [LabRequestPermission]
    serializer_class = LabRequestSerializer
    queryset = LabRequest.objects.none()

    # ----------------------------
    # Reads
    # ----------------------------
    @extend_schema(
        tags=["Lab requests"],
        responses={200: LabRequestSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False,
                             description="Comma separated statuses, e.g. PENDING,ASSIGNED."),
            OpenApiParameter(name="patient_id", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="assignee_laborant_id", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY,
                             required=False),
            OpenApiParameter(name="created_by_user_id", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY,
                             required=False),
            OpenApiParameter(name="page", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="page_size", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        qs = LabRequestService.list_requests(actor=get_request_actor(request), params=request.query_params)
        return paginate(request, qs, LabRequestSerializer)

    @extend_schema(tags=["Lab requests"], responses={200: LabRequestSerializer})
    def retrieve(self, request, pk=None):
        lab_request = LabRequestService.get_request(actor=get_request_actor(request), request_id=pk)
        return Response(LabRequestSerializer(lab_request).data, status=status.HTTP_200_OK)

    # ----------------------------
    # Writes
    # ----------------------------
    @extend_schema(tags=["Lab requests"], request=LabRequestCreateSerializer, responses={201: LabRequestSerializer})
    def create(self, request):
        ser = LabRequestCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        lab_request = LabRequestService.create_request(
            actor=get_request_actor(request),
            patient_id=ser.validated_data["patient_id"],
            file_title=ser.validated_data["file_title"],
            notes=ser.validated_data.get("notes"),
            assignee_laborant_id=ser.validated_data.get("assignee_laborant_id"),
        )
        return Response(LabRequestSerializer(lab_request).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Lab requests"], request=LabRequestAssignSerializer, responses={200: LabRequestSerializer})
    @action(detail=True, methods=["put", "post"])
    def assign(self, request, pk=None):
        ser = LabRequestAssignSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        lab_request = LabRequestService.assign_request(
            actor=get_request_actor(request),
            request_id=pk,
            assignee_laborant_id=ser.validated_data["assignee_laborant_id"],
        )
        return Response(LabRequestSerializer(lab_request).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Lab requests"], request=None, responses={200: LabRequestSerializer})
    @action(detail=True, methods=["put", "post"])
    def claim(self, request, pk=None):
        lab_request = LabRequestService.claim_request(actor=get_request_actor(request), request_id=pk)
        return Response(LabRequestSerializer(lab_request).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Lab requests"], request=LabRequestConfirmSerializer, responses={200: LabRequestSerializer})
    @action(detail=True, methods=["put", "post"])
    def confirm(self, request, pk=None):
        ser = LabRequestConfirmSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        lab_request = LabRequestService.confirm_with_file(
            actor=get_request_actor(request),
            request_id=pk,
            medical_file_id=ser.validated_data.get("medical_file_id"),
        )
        return Response(LabRequestSerializer(lab_request).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Lab requests"], request=None, responses={200: LabRequestSerializer})
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        lab_request = LabRequestService.cancel_request(actor=get_request_actor(request), request_id=pk)
        return Response(LabRequestSerializer(lab_request).data, status=status.HTTP_200_OK)
