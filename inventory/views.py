from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
import logging

from base.pagination import paginated_response
from .models import Item, StockMovement
from .serializers import ItemSummarySerializer, StockMovementSerializer
from .services import StockLedger

logger = logging.getLogger(__name__)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def item_movements(request, pk):
    """Stock ledger of one item, oldest first"""
    try:
        item = Item.objects.get(pk=pk)
    except Item.DoesNotExist:
        logger.warning(f"Movements requested for unknown item {pk}")
        return Response(
            {"status": "error", "message": f"Item not found with ID: {pk}"},
            status=status.HTTP_404_NOT_FOUND,
        )

    movements = StockMovement.objects.for_item(item).select_related("created_by")
    return paginated_response(
        request,
        movements,
        StockMovementSerializer,
        item=ItemSummarySerializer(item).data,
        balanced=StockLedger.reconcile(item),
    )
