"""Subscription view mapper tests."""

from app.marketplace.mapper import map_subscription_view
from app.schemas.marketplace import SubscriptionStatus


class TestMapSubscriptionView:
    """Subscription + plans flattened into one view."""

    def test_selected_plan_fields(self, subscription_factory, plan_factory):
        subscription = subscription_factory(planId="silver")
        silver = plan_factory("silver", displayName="Silver Tier")
        gold = plan_factory("gold")

        view = map_subscription_view(subscription, silver, [silver, gold])

        assert view.id == subscription.id
        assert view.name == "Contoso Cloud"
        assert view.plan_id == "silver"
        assert view.plan_display_name == "Silver Tier"
        assert view.quantity == 10
        assert view.subscription_status == SubscriptionStatus.SUBSCRIBED
        assert view.is_active_subscription is True
        assert view.is_metering_supported is False

    def test_customer_fields_from_purchaser(self, subscription_factory, plan_factory):
        subscription = subscription_factory()
        plan = plan_factory("silver")

        view = map_subscription_view(subscription, plan, [plan])

        assert view.customer_email_address == "buyer@contoso.test"
        assert view.customer_tenant_id == subscription.purchaser.tenant_id
        assert view.purchaser == subscription.purchaser
        assert view.purchaser is not subscription.purchaser

    def test_metering_supported_when_plan_has_dimensions(self, subscription_factory, plan_factory):
        metered = plan_factory("metered", dimensions=[{"id": "api_calls", "displayName": "API calls"}])

        view = map_subscription_view(subscription_factory(), metered, [metered])

        assert view.is_metering_supported is True

    def test_plan_list_preserves_order(self, subscription_factory, plan_factory):
        plans = [plan_factory(name) for name in ("gold", "bronze", "silver")]

        view = map_subscription_view(subscription_factory(), plans[2], plans)

        assert [p.plan_id for p in view.plan_list] == ["gold", "bronze", "silver"]
        assert all(copy is not original for copy, original in zip(view.plan_list, plans))

    def test_no_selected_plan_falls_back_to_subscription_plan(self, subscription_factory):
        view = map_subscription_view(subscription_factory(planId="legacy"), None, [])

        assert view.plan_id == "legacy"
        assert view.plan_display_name is None
        assert view.is_metering_supported is False
        assert view.plan_list == []

    def test_pending_subscription_not_active(self, subscription_factory, plan_factory):
        subscription = subscription_factory(saasSubscriptionStatus="PendingFulfillmentStart")
        plan = plan_factory("silver")

        view = map_subscription_view(subscription, plan, [plan])

        assert view.is_active_subscription is False
        assert view.subscription_status == SubscriptionStatus.PENDING_FULFILLMENT_START

    def test_inputs_not_mutated(self, subscription_factory, plan_factory):
        subscription = subscription_factory()
        plans = [plan_factory("silver"), plan_factory("gold")]
        before = (subscription.model_dump(), [p.model_dump() for p in plans])

        map_subscription_view(subscription, plans[0], plans)

        assert (subscription.model_dump(), [p.model_dump() for p in plans]) == before
