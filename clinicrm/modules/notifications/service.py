import uuid
import logging
from string import Template
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from clinicrm.modules.notifications.models import OutboundMessage

log = logging.getLogger(__name__)

PORTAL_OTP_SUBJECT = "Your patient portal code"
PORTAL_OTP_BODY = "Hello $name,\n\nYour one-time login code is $otp. It expires in $minutes minutes.\n"

class NotificationsService:
    def __init__(self, s: AsyncSession): self.s = s

    async def send(self, org: uuid.UUID, *, channel: str, to: str, subject: str | None, body: str, variables: dict | None = None, meta: dict | None = None) -> OutboundMessage:
        rendered_subject = Template(subject or "").safe_substitute(variables or {})
        rendered_body = Template(body or "").safe_substitute(variables or {})
        m = OutboundMessage(org_id=org, channel=channel, to=to, subject=rendered_subject or None, body=rendered_body, meta=meta or {}, status="sent")
        self.s.add(m); await self.s.flush()
        # NOOP delivery: message persisted as 'sent'; swap with real adapter later
        log.info("Queued %s message to %s", channel, to)
        return m

    async def send_portal_otp(self, org: uuid.UUID, *, to: str, name: str, otp: str, minutes: int) -> OutboundMessage:
        # The OTP itself is only rendered into the body, never stored in meta.
        return await self.send(org, channel="email", to=to, subject=PORTAL_OTP_SUBJECT, body=PORTAL_OTP_BODY,
                               variables={"name": name, "otp": otp, "minutes": minutes}, meta={"kind": "portal_otp"})

    async def list_for_recipient(self, org: uuid.UUID, to: str) -> list[OutboundMessage]:
        res = await self.s.execute(select(OutboundMessage).where(OutboundMessage.org_id == org, OutboundMessage.to == to, OutboundMessage.deleted_at.is_(None)).order_by(OutboundMessage.created_at.desc()))
        return list(res.scalars().all())
