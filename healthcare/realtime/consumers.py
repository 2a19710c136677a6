import json

from channels.generic.websocket import AsyncWebsocketConsumer

from healthcare.services.notifications import user_group


class NotificationConsumer(AsyncWebsocketConsumer):
    """Per-user notification stream at ``ws/notifications/``."""

    async def connect(self):
        user = self.scope.get("user")
        if not (user and user.is_authenticated):
            await self.close(code=4001)
            return
        self.group_name = user_group(user.pk)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def notify_event(self, event):
        # event: {"type": "notify.event", "event": "...", "payload": {...}}
        await self.send(json.dumps({"type": event["event"], "payload": event["payload"]}, default=str))
