from django.utils.dateparse import parse_date
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
import logging

from base.exceptions import (
    BillingError,
    InsufficientStock,
    InvalidState,
    ItemInactive,
    NotFound,
    PersistenceFailure,
    ValidationFailed,
)
from base.pagination import paginated_response
from .serializers import BillCancelSerializer, BillCreateSerializer, BillSerializer
from .services import BillingService

logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (ValidationFailed, status.HTTP_400_BAD_REQUEST),
    (InsufficientStock, status.HTTP_400_BAD_REQUEST),
    (ItemInactive, status.HTTP_400_BAD_REQUEST),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (InvalidState, status.HTTP_409_CONFLICT),
)


def error_response(error):
    """Translate a billing error into the JSON error envelope"""
    if isinstance(error, PersistenceFailure):
        return server_error_response()

    for error_class, http_status in ERROR_STATUS:
        if isinstance(error, error_class):
            body = {"status": "error", "message": error.message}
            if isinstance(error, ValidationFailed) and error.errors:
                body["errors"] = error.errors
            return Response(body, status=http_status)

    return server_error_response()


def server_error_response():
    return Response(
        {"status": "error", "message": "Server error occurred"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def invalid_data_response(errors):
    return Response(
        {"status": "error", "message": "Invalid data", "errors": errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def bill_list_create(request):
    """List bills (newest first) or create a new one"""
    service = BillingService()

    if request.method == "GET":
        return paginated_response(request, service.list_bills(), BillSerializer)

    serializer = BillCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_data_response(serializer.errors)

    data = serializer.validated_data
    try:
        bill = service.create_bill(
            customer_id=data["customer_id"],
            lines=[dict(line) for line in data["lines"]],
            actor=request.user,
            discount_percentage=data["discount_percentage"],
            tax_percentage=data["tax_percentage"],
            payment_method=data.get("payment_method"),
            payment_status=data["payment_status"],
            notes=data["notes"],
            bill_number=data["bill_number"] or None,
        )
    except BillingError as e:
        return error_response(e)
    except Exception:
        logger.exception("Unexpected error while creating bill")
        return server_error_response()

    return Response(
        {
            "status": "success",
            "message": "Bill created successfully",
            "bill": BillSerializer(bill).data,
        },
        status=status.HTTP_201_CREATED,
    )


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def bill_detail(request, pk):
    try:
        bill = BillingService().get_bill(pk)
    except BillingError as e:
        return error_response(e)

    return Response({"status": "success", "bill": BillSerializer(bill).data})


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def bill_by_number(request, bill_number):
    try:
        bill = BillingService().get_bill_by_number(bill_number)
    except BillingError as e:
        return error_response(e)

    return Response({"status": "success", "bill": BillSerializer(bill).data})


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def cancel_bill(request, pk):
    """Cancel an active bill and return its stock"""
    serializer = BillCancelSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_data_response(serializer.errors)

    try:
        bill = BillingService().cancel_bill(
            pk, request.user, serializer.validated_data["reason"]
        )
    except BillingError as e:
        return error_response(e)
    except Exception:
        logger.exception(f"Unexpected error while cancelling bill {pk}")
        return server_error_response()

    return Response(
        {
            "status": "success",
            "message": "Bill cancelled successfully",
            "bill": BillSerializer(bill).data,
        }
    )


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def generate_bill_number(request):
    try:
        bill_number = BillingService().generate_bill_number()
    except Exception:
        logger.exception("Failed to generate bill number")
        return server_error_response()

    return Response({"status": "success", "bill_number": bill_number})


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def customer_bills(request, customer_id):
    try:
        bills = BillingService().bills_for_customer(customer_id)
    except BillingError as e:
        return error_response(e)

    return paginated_response(request, bills, BillSerializer, customer_id=customer_id)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def bills_by_date_range(request):
    """Bills dated between ``start_date`` and ``end_date`` (YYYY-MM-DD)"""
    errors = {}
    dates = {}
    for key in ("start_date", "end_date"):
        raw = request.query_params.get(key, "")
        try:
            dates[key] = parse_date(raw)
        except ValueError:
            dates[key] = None
        if dates[key] is None:
            errors[key] = "Date is required in YYYY-MM-DD format"
    if errors:
        return invalid_data_response(errors)

    try:
        bills = BillingService().bills_between(dates["start_date"], dates["end_date"])
    except BillingError as e:
        return error_response(e)

    return paginated_response(
        request,
        bills,
        BillSerializer,
        start_date=dates["start_date"],
        end_date=dates["end_date"],
    )
