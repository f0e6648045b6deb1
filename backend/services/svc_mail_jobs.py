import asyncio
from azure.cosmos import ContainerProxy
from backend.configuration.database import get_container
from backend.configuration.monitor import log_event, log_exception, start_span
from backend.models.mod_mail import MailMeta
from backend.models.mod_purchase import ACTIVE_PURCHASE_STATUSES, PackagePurchase, UserRecord
from backend.services.svc_mail import MailService, get_mail_service
from typing import List, Optional
from datetime import datetime, timedelta, timezone

class MailJobService:
    @staticmethod
    def get_active_purchases(db: ContainerProxy, now: Optional[datetime] = None) -> List[PackagePurchase]:
        """
        Purchases that are ACTIVE or PENDING and not yet expired.

        Stored expiry strings vary in offset notation and fractional digits, so
        the query only narrows by calendar day and the exact cut is made on
        parsed datetimes.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = (now.astimezone(timezone.utc) - timedelta(days=1)).date().isoformat()
        query = (
            "SELECT * FROM c WHERE ARRAY_CONTAINS(@statuses, c.status) "
            "AND c.expires_at >= @cutoff"
        )
        items = db.query_items(
            query=query,
            parameters=[
                {"name": "@statuses", "value": list(ACTIVE_PURCHASE_STATUSES)},
                {"name": "@cutoff", "value": cutoff},
            ],
            enable_cross_partition_query=True,
        )
        purchases = [PackagePurchase(**item) for item in items]
        return [p for p in purchases if p.expires_at > now]

    @staticmethod
    def get_user(db: ContainerProxy, user_id: str) -> Optional[UserRecord]:
        query = "SELECT * FROM c WHERE c.id = @id"
        items = list(db.query_items(
            query=query,
            parameters=[{"name": "@id", "value": user_id}],
            enable_cross_partition_query=True,
        ))
        return UserRecord(**items[0]) if items else None

    @staticmethod
    async def send_weekly_checkin_reminders(
        purchases_db: ContainerProxy,
        users_db: ContainerProxy,
        mail_service: MailService,
    ) -> int:
        """
        Mail a weekly check-in reminder to every user holding a live package.

        A user with several live purchases gets one mail per run. Users without
        an email address are skipped. Returns the number of users mailed.
        """
        try:
            with start_span("send_weekly_checkin_reminders"):
                purchases = await asyncio.to_thread(MailJobService.get_active_purchases, purchases_db)
                log_event("Weekly check-in reminders started", {"purchases": len(purchases)})

                sent_users = set()
                for purchase in purchases:
                    if purchase.user_id in sent_users:
                        continue
                    user = await asyncio.to_thread(MailJobService.get_user, users_db, purchase.user_id)
                    if not user or not user.email:
                        continue

                    await mail_service.send_weekly_checkin_email(
                        user.email,
                        user.display_name,
                        MailMeta(context={
                            "user_id": purchase.user_id,
                            "package_name": purchase.package_name,
                        }),
                    )
                    sent_users.add(purchase.user_id)

                log_event("Weekly check-in reminders finished", {"users": len(sent_users)})
                return len(sent_users)
        except Exception as e:
            log_exception(e, {"operation": "send_weekly_checkin_reminders"})
            raise

async def send_weekly_checkin_reminder_emails() -> int:
    """Scheduler entry point wired to the production containers"""
    return await MailJobService.send_weekly_checkin_reminders(
        get_container("purchases"),
        get_container("users"),
        get_mail_service(),
    )
