# Marketplace Routers Module
# Exports all modular API routers for the marketplace

from routers.users import router as users_router
from routers.uploads import router as uploads_router
from routers.influencers import router as influencers_router
from routers.channels import router as channels_router
from routers.banner_ads import router as banner_ads_router
from routers.campaigns import router as campaigns_router
from routers.collaborations import router as collaborations_router
from routers.ad_bookings import router as ad_bookings_router
from routers.payments import router as payments_router
from routers.payouts import router as payouts_router
from routers.disputes import router as disputes_router
from routers.kyc import router as kyc_router
from routers.messages import router as messages_router
from routers.support import router as support_router
from routers.community import router as community_router
from routers.notifications import router as notifications_router
from routers.memberships import router as memberships_router
from routers.platform import router as platform_router

__all__ = [
    'users_router',
    'uploads_router',
    'influencers_router',
    'channels_router',
    'banner_ads_router',
    'campaigns_router',
    'collaborations_router',
    'ad_bookings_router',
    'payments_router',
    'payouts_router',
    'disputes_router',
    'kyc_router',
    'messages_router',
    'support_router',
    'community_router',
    'notifications_router',
    'memberships_router',
    'platform_router',
]
