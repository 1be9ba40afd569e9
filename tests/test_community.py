from datetime import datetime, timedelta

from conftest import auth_headers
from database.models import User, UserRole, MembershipPlan
from database.marketplace_models import Boost, BoostTypeDB, InfluencerProfile
from services.maintenance import run_maintenance
from services.notification_service import NotificationService, NotificationType

API = "/api/v2"


def _disable(client, staff, flag):
    response = client.put(f"{API}/platform/settings", json={"settings": {flag: False}}, headers=auth_headers(staff))
    assert response.status_code == 200
    assert response.json()[flag] is False


# ============================================================================
# MESSAGING
# ============================================================================

def test_conversation_between_two_users(client, brand, influencer):
    sent = client.post(
        f"{API}/messages",
        json={"receiver_id": influencer.id, "text": "Loved your last reel!"},
        headers=auth_headers(brand),
    )
    assert sent.status_code == 201

    conversations = client.get(f"{API}/messages/conversations", headers=auth_headers(influencer)).json()["conversations"]
    assert len(conversations) == 1
    assert conversations[0]["other_user"]["id"] == brand.id
    assert conversations[0]["unread_count"] == 1

    thread = client.get(f"{API}/messages/with/{brand.id}", headers=auth_headers(influencer)).json()["messages"]
    assert [m["text"] for m in thread] == ["Loved your last reel!"]

    conversations = client.get(f"{API}/messages/conversations", headers=auth_headers(influencer)).json()["conversations"]
    assert conversations[0]["unread_count"] == 0


def test_empty_message_is_rejected(client, brand, influencer):
    response = client.post(f"{API}/messages", json={"receiver_id": influencer.id}, headers=auth_headers(brand))
    assert response.status_code == 422


def test_cannot_message_yourself(client, brand):
    response = client.post(f"{API}/messages", json={"receiver_id": brand.id, "text": "hi"}, headers=auth_headers(brand))
    assert response.status_code == 400


def test_messaging_can_be_switched_off(client, staff, brand, influencer):
    _disable(client, staff, "is_messaging_enabled")

    response = client.post(f"{API}/messages", json={"receiver_id": influencer.id, "text": "hi"}, headers=auth_headers(brand))
    assert response.status_code == 403


# ============================================================================
# SUPPORT
# ============================================================================

def test_staff_reply_moves_ticket_in_progress(client, influencer, staff):
    ticket = client.post(
        f"{API}/support/tickets",
        json={"subject": "Payout delayed", "message": "My payout has been pending for a week"},
        headers=auth_headers(influencer),
    ).json()
    assert ticket["status"] == "open"
    assert len(ticket["replies"]) == 1

    reply = client.post(
        f"{API}/support/tickets/{ticket['id']}/replies",
        json={"text": "We are checking with the bank"},
        headers=auth_headers(staff),
    )
    assert reply.json()["status"] == "in_progress"
    assert reply.json()["reply_count"] == 2

    unread = client.get(f"{API}/notifications/unread-count", headers=auth_headers(influencer)).json()
    assert unread["unread_count"] == 1


def test_ticket_is_private_to_owner(client, influencer, brand):
    ticket = client.post(
        f"{API}/support/tickets",
        json={"subject": "Login issue", "message": "Cannot log in on Android"},
        headers=auth_headers(influencer),
    ).json()

    assert client.get(f"{API}/support/tickets/{ticket['id']}", headers=auth_headers(brand)).status_code == 403


def test_live_help_reuses_open_session(client, influencer):
    first = client.post(f"{API}/support/live-help", headers=auth_headers(influencer)).json()
    second = client.post(f"{API}/support/live-help", headers=auth_headers(influencer)).json()

    assert first["id"] == second["id"]
    assert first["status"] == "unassigned"


# ============================================================================
# COMMUNITY FEED
# ============================================================================

def test_posts_likes_and_comments(client, brand, influencer):
    post = client.post(f"{API}/community/posts", json={"text": "Looking for food creators in Pune"}, headers=auth_headers(brand)).json()

    liked = client.post(f"{API}/community/posts/{post['id']}/like", headers=auth_headers(influencer)).json()
    assert liked == {"liked": True, "like_count": 1}

    comment = client.post(
        f"{API}/community/posts/{post['id']}/comments",
        json={"text": "I'd love to collaborate"},
        headers=auth_headers(influencer),
    )
    assert comment.status_code == 201

    feed = client.get(f"{API}/community/posts", headers=auth_headers(influencer)).json()["posts"]
    assert feed[0]["liked_by_me"] is True
    assert feed[0]["comment_count"] == 1

    unliked = client.post(f"{API}/community/posts/{post['id']}/like", headers=auth_headers(influencer)).json()
    assert unliked == {"liked": False, "like_count": 0}


def test_private_posts_are_hidden_from_others(client, brand, influencer):
    client.post(f"{API}/community/posts", json={"text": "Draft idea", "visibility": "private"}, headers=auth_headers(brand))

    assert client.get(f"{API}/community/posts", headers=auth_headers(influencer)).json()["posts"] == []
    assert len(client.get(f"{API}/community/posts", headers=auth_headers(brand)).json()["posts"]) == 1


def test_only_author_or_moderator_deletes(client, brand, influencer, staff):
    post = client.post(f"{API}/community/posts", json={"text": "Hello creators"}, headers=auth_headers(brand)).json()

    assert client.delete(f"{API}/community/posts/{post['id']}", headers=auth_headers(influencer)).status_code == 403
    assert client.delete(f"{API}/community/posts/{post['id']}", headers=auth_headers(staff)).status_code == 204


# ============================================================================
# PLATFORM AND MEMBERSHIPS
# ============================================================================

def test_settings_require_super_admin(client, make_user):
    support_agent = make_user(UserRole.STAFF, staff_permissions=["support"])
    response = client.put(f"{API}/platform/settings", json={"settings": {"gst_rate": 5}}, headers=auth_headers(support_agent))
    assert response.status_code == 403


def test_public_settings_hide_financial_keys(client):
    public = client.get(f"{API}/platform/settings/public").json()

    assert public["is_messaging_enabled"] is True
    assert "platform_commission_rate" not in public


def test_plans_follow_role(client, brand, influencer):
    brand_plans = client.get(f"{API}/memberships/plans", headers=auth_headers(brand)).json()["plans"]
    creator_plans = client.get(f"{API}/memberships/plans", headers=auth_headers(influencer)).json()["plans"]

    assert [p["plan"] for p in brand_plans] == ["pro_10", "pro_20", "pro_unlimited"]
    assert [p["plan"] for p in creator_plans] == ["basic", "pro", "premium"]


def test_broadcast_reaches_selected_roles(client, staff, brand, influencer):
    response = client.post(
        f"{API}/platform/admin/broadcast",
        json={"title": "Creator week", "body": "Boosts are half price this week", "roles": ["influencer"]},
        headers=auth_headers(staff),
    )

    assert response.status_code == 200
    assert response.json()["notified"] == 1
    assert response.json()["delivered"] == 0

    inbox = client.get(f"{API}/notifications", headers=auth_headers(influencer)).json()["notifications"]
    assert [(n["type"], n["title"]) for n in inbox] == [("system", "Creator week")]
    assert client.get(f"{API}/notifications", headers=auth_headers(brand)).json()["notifications"] == []


def test_dashboard_stats(client, staff, brand, influencer):
    stats = client.get(f"{API}/platform/admin/stats", headers=auth_headers(staff)).json()

    assert stats["total_users"] == 3
    assert stats["users_by_role"]["brand"] == 1
    assert stats["revenue"] == 0


# ============================================================================
# MAINTENANCE
# ============================================================================

def test_maintenance_expires_memberships_and_boosts(db, make_user):
    yesterday = datetime.utcnow() - timedelta(days=1)
    member = make_user(
        UserRole.BRAND,
        membership_plan=MembershipPlan.PRO_10,
        membership_active=True,
        membership_expires_at=yesterday,
        usage_direct_collaborations=7,
        usage_campaigns=3,
    )
    creator = make_user(UserRole.INFLUENCER)
    profile = InfluencerProfile(user_id=creator.id, name="Riya", handle="@riya", niche="food", is_boosted=True)
    db.add(profile)
    db.flush()
    db.add(Boost(user_id=creator.id, boost_type=BoostTypeDB.PROFILE, target_id=profile.id, expires_at=yesterday))
    db.commit()

    result = run_maintenance(db)

    assert result["memberships_expired"] == 1
    assert result["boosts_expired"] == 1
    db.expire_all()
    refreshed = db.query(User).filter(User.id == member.id).one()
    assert refreshed.membership_plan == MembershipPlan.FREE
    assert refreshed.membership_active is False
    assert refreshed.usage_direct_collaborations == 0
    assert refreshed.usage_campaigns == 0
    assert db.query(InfluencerProfile).filter(InfluencerProfile.id == profile.id).one().is_boosted is False


def test_notifications_filter_by_type(client, db, influencer):
    inbox = NotificationService(db)
    inbox.create(user_id=influencer.id, type=NotificationType.PAYMENT, title="Payment received", body="Rs 5000")
    inbox.create(user_id=influencer.id, type=NotificationType.SUPPORT, title="Support replied", body="We are on it")
    db.commit()

    response = client.get(f"{API}/notifications", params={"type": "support"}, headers=auth_headers(influencer)).json()

    assert [n["title"] for n in response["notifications"]] == ["Support replied"]
    assert response["unread_count"] == 2
