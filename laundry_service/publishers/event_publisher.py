"""
RabbitMQ Event Publisher
"""
import json
import uuid
from datetime import datetime, timezone
from typing import Dict

import pika

from laundry_service.config import settings
from laundry_service.logger import logger

ORDER_STATUS_CHANGED = "order.status.changed"
PAYMENT_COMPLETED = "payment.completed"
LOYALTY_AWARD_REQUESTED = "loyalty.award.requested"


class EventPublisher:
    """Best-effort publisher for notification and loyalty events"""

    def __init__(self):
        self.rabbitmq_url = settings.RABBITMQ_URL
        self.exchange = settings.RABBITMQ_EXCHANGE

    def _publish(self, event_type: str, routing_key: str, data: Dict) -> bool:
        """
        Publish one event to the topic exchange

        Args:
            event_type: Event name carried in the envelope
            routing_key: Topic routing key
            data: Event payload

        Returns:
            True if published successfully, False otherwise
        """
        event = {
            "event_type": event_type,
            "event_id": str(uuid.uuid4()),
            "event_version": "1.0",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source": settings.SERVICE_NAME,
            "data": data,
        }
        try:
            connection = pika.BlockingConnection(pika.URLParameters(self.rabbitmq_url))
            try:
                channel = connection.channel()
                channel.exchange_declare(
                    exchange=self.exchange,
                    exchange_type="topic",
                    durable=True,
                )
                channel.confirm_delivery()
                channel.basic_publish(
                    exchange=self.exchange,
                    routing_key=routing_key,
                    body=json.dumps(event, default=str),
                    properties=pika.BasicProperties(
                        delivery_mode=2,  # Persistent message
                        content_type="application/json",
                        correlation_id=event["event_id"],
                    ),
                )
            finally:
                connection.close()
        except pika.exceptions.AMQPError as e:
            logger.warning(f"Could not publish {event_type}: {e}")
            return False

        logger.info(f"Event published: {event_type} (ID: {event['event_id']})")
        return True

    def publish_order_status_changed(self, order_data: Dict) -> bool:
        """Notify the order's parties of a status change"""
        return self._publish("OrderStatusChanged", ORDER_STATUS_CHANGED, order_data)

    def publish_payment_completed(self, payment_data: Dict) -> bool:
        """Notify the customer that a payment settled"""
        return self._publish("PaymentCompleted", PAYMENT_COMPLETED, payment_data)

    def publish_loyalty_award_requested(self, order_data: Dict) -> bool:
        """Ask the loyalty service to award points for a completed order"""
        return self._publish("LoyaltyAwardRequested", LOYALTY_AWARD_REQUESTED, order_data)
