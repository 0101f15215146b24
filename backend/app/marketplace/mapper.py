"""Presentation mapper — subscription + plans flattened into a view."""

from app.schemas.marketplace import PlanDetailResult, SubscriptionResult, SubscriptionView


def map_subscription_view(
    subscription: SubscriptionResult,
    selected_plan: PlanDetailResult | None,
    all_plans: list[PlanDetailResult],
) -> SubscriptionView:
    """Build the view for one subscription/plan pair.

    Pure: no I/O, inputs are not mutated. When no plan is selected the
    subscription's own plan id is shown.
    """
    purchaser = subscription.purchaser.model_copy()
    return SubscriptionView(
        id=subscription.id,
        name=subscription.name,
        plan_id=selected_plan.plan_id if selected_plan else subscription.plan_id,
        plan_display_name=selected_plan.display_name if selected_plan else None,
        quantity=subscription.quantity,
        subscription_status=subscription.saas_subscription_status,
        is_active_subscription=subscription.is_active_subscription,
        is_metering_supported=bool(selected_plan and selected_plan.metering_dimensions),
        purchaser=purchaser,
        customer_email_address=purchaser.email,
        customer_tenant_id=purchaser.tenant_id,
        plan_list=[plan.model_copy() for plan in all_plans],
    )
