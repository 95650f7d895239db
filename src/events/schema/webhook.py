from ninja import Schema


class WebhookAckSchema(Schema):
    status: str
    detail: str | None = None
