# Default platform settings.
# Stored settings are merged over these so newly added keys always exist.

PLATFORM_DEFAULTS = {
    "welcome_message": "Welcome to Collabzz, the premier platform for brands and influencers.",
    "is_welcome_message_enabled": True,
    "is_maintenance_mode_enabled": False,
    "is_notification_banner_enabled": False,
    "notification_banner_text": "",
    "youtube_tutorial_url": "https://www.youtube.com",
    "is_messaging_enabled": True,
    "are_influencer_profiles_public": True,
    "is_community_feed_enabled": True,
    "is_live_help_enabled": True,
    "is_social_media_fab_enabled": True,
    "social_media_links": [],
    "training_videos": {"brand": [], "influencer": [], "livetv": [], "banneragency": []},
    "company_info": {},

    # Auth
    "is_staff_registration_enabled": True,
    "is_otp_login_enabled": True,
    "is_forgot_password_otp_enabled": True,
    "is_google_login_enabled": True,

    # KYC
    "is_kyc_id_proof_required": True,
    "is_kyc_selfie_required": True,
    "is_digilocker_kyc_enabled": True,
    "is_instant_kyc_enabled": True,
    "is_payout_instant_verification_enabled": True,

    # Memberships and boosts
    "is_pro_membership_enabled": True,
    "is_creator_membership_enabled": True,
    "is_profile_boosting_enabled": True,
    "is_campaign_boosting_enabled": True,
    "is_banner_ads_enabled": True,
    "membership_prices": {
        "free": 0,
        "pro_10": 1000,
        "pro_20": 1800,
        "pro_unlimited": 2500,
        "basic": 199,
        "pro": 499,
        "premium": 999,
    },
    "boost_prices": {"profile": 49, "campaign": 99, "banner": 199},
    "discount_settings": {
        "creator_profile_boost": {"is_enabled": False, "percentage": 0},
        "brand_membership": {"is_enabled": False, "percentage": 0},
        "creator_membership": {"is_enabled": False, "percentage": 0},
        "brand_campaign_boost": {"is_enabled": False, "percentage": 0},
        "brand_banner_boost": {"is_enabled": False, "percentage": 0},
    },

    # Commission and taxes (percentages)
    "is_platform_commission_enabled": True,
    "platform_commission_rate": 10,
    "is_brand_platform_fee_enabled": True,
    "payment_processing_charge_rate": 2,
    "gst_rate": 18,
    "is_brand_gst_enabled": True,
    "is_creator_gst_enabled": True,
    "cancellation_penalty_amount": 500,

    # Payouts
    "payout_settings": {
        "require_selfie_for_payout": True,
        "require_live_video_for_daily_payout": True,
    },
}

# Keys that unauthenticated clients may read.
PUBLIC_SETTING_KEYS = {
    "welcome_message",
    "is_welcome_message_enabled",
    "is_maintenance_mode_enabled",
    "is_notification_banner_enabled",
    "notification_banner_text",
    "youtube_tutorial_url",
    "is_messaging_enabled",
    "is_community_feed_enabled",
    "is_live_help_enabled",
    "is_social_media_fab_enabled",
    "social_media_links",
    "training_videos",
    "company_info",
    "is_staff_registration_enabled",
    "is_otp_login_enabled",
    "is_google_login_enabled",
    "is_pro_membership_enabled",
    "is_creator_membership_enabled",
    "is_profile_boosting_enabled",
    "is_campaign_boosting_enabled",
    "is_banner_ads_enabled",
    "membership_prices",
    "boost_prices",
    "discount_settings",
}
