# ===============================================================================
# REFERRAL API VIEWS 🎁
# ===============================================================================

import logging
import uuid

from django.http import HttpRequest
from rest_framework import status
from rest_framework.decorators import (
    api_view,
    authentication_classes,
    permission_classes,
    throttle_classes,
)
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from apps.referrals.campaigns import CampaignService, parse_campaign_datetime
from apps.referrals.exceptions import ExhaustedRetries
from apps.referrals.models import ReferralReward
from apps.referrals.services import ReferralService

from ..core.throttling import (
    ReferralProcessThrottle,
    ReferralValidationThrottle,
    StandardAPIThrottle,
)
from .serializers import (
    CampaignStatsSerializer,
    ReferralCampaignSerializer,
    ReferralRewardSerializer,
    ReferralStatsSerializer,
    serialize_validation,
)

logger = logging.getLogger(__name__)

REWARD_STATUSES = {choice for choice, _label in ReferralReward.STATUS_CHOICES}


def _campaign_error_status(error: str) -> int:
    return status.HTTP_404_NOT_FOUND if error == "Campaign not found" else status.HTTP_400_BAD_REQUEST


# ===============================================================================
# USER REFERRAL APIS 👤
# ===============================================================================


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@throttle_classes([StandardAPIThrottle])
def referral_code_api(request: HttpRequest) -> Response:
    """
    GET /api/referrals/code/

    Response: {"code": "A1B2C3D4"}
    """
    try:
        code = ReferralService().generate_referral_code(request.user.pk)
    except ExhaustedRetries as e:
        logger.error(f"🔥 [Referral API] Code generation failed for user {request.user.pk}: {e}")
        return Response({'error': 'Failed to generate referral code'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response({'code': code})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@throttle_classes([StandardAPIThrottle])
def referral_stats_api(request: HttpRequest) -> Response:
    """GET /api/referrals/stats/ - the caller's referrals and earnings"""
    stats = ReferralService().get_user_referral_stats(request.user.pk)
    return Response(ReferralStatsSerializer(stats).data)


# ===============================================================================
# PUBLIC & INTERNAL APIS 🌐
# ===============================================================================


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([ReferralProcessThrottle])
def process_referral_api(request: HttpRequest) -> Response:
    """
    POST /api/referrals/process/

    Request Body:
    {
        "referred_user_id": 42,
        "referral_code": "A1B2C3D4"
    }

    Response:
        200 {"success": true, "referrer_id": 7}
        400 {"success": false, "error": "..."}
    """
    referred_user_id = request.data.get('referred_user_id')
    referral_code = request.data.get('referral_code')

    if not referred_user_id or not referral_code:
        return Response(
            {'success': False, 'error': 'Missing required fields'},
            status=status.HTTP_400_BAD_REQUEST,
        )

    result = ReferralService().process_referral(referred_user_id, str(referral_code).strip())
    if not result.success:
        logger.info(f"⚠️ [Referral API] Referral rejected for user {referred_user_id}: {result.error}")
        return Response({'success': False, 'error': result.error}, status=status.HTTP_400_BAD_REQUEST)

    return Response({'success': True, 'referrer_id': result.referrer_id})


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([ReferralValidationThrottle])
def validate_referral_code_api(request: HttpRequest, code: str) -> Response:
    """GET /api/referrals/validate/<code>/ - {"valid": bool, "error"?: str}"""
    result = ReferralService().validate_referral_code(code)
    return Response(serialize_validation(result.valid, result.error))


# ===============================================================================
# ADMIN CAMPAIGN APIS 📣
# ===============================================================================


@api_view(['GET', 'POST'])
@permission_classes([IsAdminUser])
def campaign_list_api(request: HttpRequest) -> Response:
    """
    GET  /api/referrals/admin/campaigns/?is_active=true&start_date=...&end_date=...
    POST /api/referrals/admin/campaigns/
    """
    service = CampaignService()

    if request.method == 'POST':
        result = service.create_campaign(request.data)
        if result.is_err():
            return Response({'error': result.unwrap_err()}, status=status.HTTP_400_BAD_REQUEST)

        campaign = result.unwrap()
        logger.info(f"✅ [Referral API] Campaign {campaign.id} created by {request.user.pk}")
        return Response(
            {'campaign': ReferralCampaignSerializer(campaign).data},
            status=status.HTTP_201_CREATED,
        )

    is_active = None
    if 'is_active' in request.query_params:
        is_active = request.query_params['is_active'].lower() == 'true'

    filters = {}
    for name in ('start_date', 'end_date'):
        raw = request.query_params.get(name)
        if raw:
            parsed = parse_campaign_datetime(raw)
            if parsed is None:
                return Response({'error': f'Invalid {name}'}, status=status.HTTP_400_BAD_REQUEST)
            filters[name] = parsed

    campaigns = service.list_campaigns(is_active=is_active, **filters)
    return Response({'campaigns': ReferralCampaignSerializer(campaigns, many=True).data})


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminUser])
def campaign_detail_api(request: HttpRequest, campaign_id: uuid.UUID) -> Response:
    """
    GET    /api/referrals/admin/campaigns/<id>/
    PUT    /api/referrals/admin/campaigns/<id>/   (partial update)
    DELETE /api/referrals/admin/campaigns/<id>/?hard=true
    """
    service = CampaignService()

    if request.method == 'GET':
        result = service.get_campaign(campaign_id)
    elif request.method == 'DELETE':
        hard_delete = request.query_params.get('hard', '').lower() == 'true'
        deleted = service.delete_campaign(campaign_id, hard_delete=hard_delete)
        if deleted.is_err():
            error = deleted.unwrap_err()
            return Response({'error': error}, status=_campaign_error_status(error))
        logger.info(f"✅ [Referral API] Campaign {campaign_id} removed (hard={hard_delete}) by {request.user.pk}")
        return Response({'success': True})
    else:
        result = service.update_campaign(campaign_id, request.data)

    if result.is_err():
        error = result.unwrap_err()
        return Response({'error': error}, status=_campaign_error_status(error))

    return Response({'campaign': ReferralCampaignSerializer(result.unwrap()).data})


@api_view(['GET'])
@permission_classes([IsAdminUser])
def campaign_stats_api(request: HttpRequest, campaign_id: uuid.UUID) -> Response:
    """GET /api/referrals/admin/campaigns/<id>/stats/"""
    result = CampaignService().get_campaign_stats(campaign_id)
    if result.is_err():
        error = result.unwrap_err()
        return Response({'error': error}, status=_campaign_error_status(error))

    return Response({'stats': CampaignStatsSerializer(result.unwrap()).data})


# ===============================================================================
# ADMIN REWARD APIS 💸
# ===============================================================================


@api_view(['GET'])
@permission_classes([IsAdminUser])
def reward_list_api(request: HttpRequest) -> Response:
    """GET /api/referrals/admin/rewards/?status=PENDING"""
    rewards = ReferralReward.objects.all().order_by('-created_at')

    status_filter = request.query_params.get('status')
    if status_filter:
        if status_filter not in REWARD_STATUSES:
            return Response({'error': 'Invalid status'}, status=status.HTTP_400_BAD_REQUEST)
        rewards = rewards.filter(status=status_filter)

    return Response({'rewards': ReferralRewardSerializer(rewards, many=True).data})


@api_view(['POST'])
@permission_classes([IsAdminUser])
def approve_reward_api(request: HttpRequest, reward_id: uuid.UUID) -> Response:
    """
    POST /api/referrals/admin/rewards/<id>/approve/

    Response:
        200 {"success": true}
        400 {"success": false, "error": "Invalid reward"}
    """
    result = ReferralService().approve_and_pay_reward(reward_id, request.user)
    if not result.success:
        return Response({'success': False, 'error': result.error}, status=status.HTTP_400_BAD_REQUEST)

    logger.info(f"✅ [Referral API] Reward {reward_id} approved by {request.user.pk}")
    return Response({'success': True})
