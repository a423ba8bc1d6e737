"""Synthetic history for demos and tests.

Five services on localhost, twelve events and fourteen commands linked by
four correlation chains: account creation, profile and billing setup, a
payment, and a failed refund/cancellation.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from drill.core.enums import CommandStatus, IdType
from drill.core.ids import new_id, utc_now
from drill.core.models import CommandRecord, EventRecord, ServiceEndpoint

MOCK_SERVICES: list[ServiceEndpoint] = [
    ServiceEndpoint(name="account-service", id_type=IdType.AGGREGATE, url="http://localhost:8081"),
    ServiceEndpoint(name="payment-service", id_type=IdType.INDEX, url="http://localhost:8082"),
    ServiceEndpoint(name="notification-service", id_type=IdType.AGGREGATE, url="http://localhost:8083"),
    ServiceEndpoint(name="audit-service", id_type=IdType.INDEX, url="http://localhost:8084"),
    ServiceEndpoint(name="billing-service", id_type=IdType.AGGREGATE, url="http://localhost:8085"),
]

_OK = CommandStatus.SUCCEEDED
_FAILED = CommandStatus.FAILED

# (service, alias, offset, payload, chain)
_EVENTS: list[tuple[str, str, timedelta, str, int]] = [
    ("account-service", "AccountCreated", timedelta(minutes=1),
     '{"name": "John Doe", "email": "john@example.com"}', 0),
    ("account-service", "AccountVerified", timedelta(minutes=5),
     '{"verifiedAt": "2024-01-15T10:00:00Z"}', 0),
    ("account-service", "ProfileUpdated", timedelta(minutes=30),
     '{"field": "address", "value": "123 Main St"}', 1),
    ("payment-service", "PaymentMethodAdded", timedelta(minutes=10),
     '{"type": "credit_card", "last4": "4242"}', 1),
    ("payment-service", "PaymentProcessed", timedelta(minutes=45),
     '{"amount": 99.99, "currency": "USD"}', 2),
    ("payment-service", "RefundIssued", timedelta(hours=2),
     '{"amount": 25.00, "reason": "partial_refund"}', 3),
    ("notification-service", "WelcomeEmailSent", timedelta(minutes=2),
     '{"template": "welcome", "recipient": "john@example.com"}', 0),
    ("notification-service", "PaymentReceiptSent", timedelta(minutes=46),
     '{"template": "receipt", "amount": 99.99}', 2),
    ("audit-service", "AuditLogCreated", timedelta(minutes=1, seconds=30),
     '{"action": "account.create", "actor": "system"}', 0),
    ("audit-service", "ComplianceCheckPassed", timedelta(minutes=3),
     '{"checkType": "kyc", "status": "passed"}', 0),
    ("billing-service", "SubscriptionCreated", timedelta(minutes=15),
     '{"plan": "premium", "interval": "monthly"}', 1),
    ("billing-service", "InvoiceGenerated", timedelta(minutes=44),
     '{"invoiceId": "INV-001", "amount": 99.99}', 2),
]

# (service, alias, status, offset, payload, chain)
_COMMANDS: list[tuple[str, str, CommandStatus, timedelta, str, int]] = [
    ("account-service", "CreateAccount", _OK, timedelta(seconds=30),
     '{"name": "John Doe", "email": "john@example.com"}', 0),
    ("account-service", "VerifyAccount", _OK, timedelta(minutes=4),
     '{"verificationCode": "123456"}', 0),
    ("account-service", "UpdateProfile", _OK, timedelta(minutes=29),
     '{"address": "123 Main St"}', 1),
    ("payment-service", "AddPaymentMethod", _OK, timedelta(minutes=9),
     '{"type": "credit_card", "token": "tok_xxx"}', 1),
    ("payment-service", "ProcessPayment", _OK, timedelta(minutes=44),
     '{"amount": 99.99, "currency": "USD"}', 2),
    ("payment-service", "ProcessRefund", _FAILED, timedelta(hours=1, minutes=50),
     '{"amount": 50.00, "reason": "customer_request"}', 3),
    ("payment-service", "IssuePartialRefund", _OK, timedelta(hours=1, minutes=55),
     '{"amount": 25.00}', 3),
    ("notification-service", "SendWelcomeEmail", _OK, timedelta(minutes=1, seconds=45),
     '{"template": "welcome"}', 0),
    ("notification-service", "SendSMS", _FAILED, timedelta(minutes=6),
     '{"template": "welcome", "channel": "sms"}', 0),
    ("audit-service", "CreateAuditLog", _OK, timedelta(minutes=1, seconds=15),
     '{"action": "account.create"}', 0),
    ("audit-service", "RunComplianceCheck", _OK, timedelta(minutes=2, seconds=30),
     '{"checkType": "kyc"}', 0),
    ("billing-service", "CreateSubscription", _OK, timedelta(minutes=14),
     '{"plan": "premium"}', 1),
    ("billing-service", "GenerateInvoice", _OK, timedelta(minutes=43),
     '{"subscriptionId": "sub_xxx"}', 2),
    ("billing-service", "CancelSubscription", _FAILED, timedelta(hours=3),
     '{"reason": "customer_request"}', 3),
]


def generate_mock_data(
    aggregate_id: str,
    *,
    now: datetime | None = None,
) -> tuple[list[EventRecord], list[CommandRecord]]:
    """Build a fresh synthetic history for *aggregate_id*.

    Timestamps start 24h before *now*.  Every call draws new record and
    correlation ids.
    """
    base = (now or utc_now()) - timedelta(hours=24)
    chains = [new_id() for _ in range(4)]

    events = [
        EventRecord(
            event_id=new_id(),
            event_alias=alias,
            persisted_at=base + offset,
            payload=payload,
            correlation_id=chains[chain],
            aggregate_id=aggregate_id,
            service_name=service,
        )
        for service, alias, offset, payload, chain in _EVENTS
    ]
    commands = [
        CommandRecord(
            command_id=new_id(),
            command_alias=alias,
            command_status=status,
            persisted_at=base + offset,
            payload=payload,
            correlation_id=chains[chain],
            aggregate_id=aggregate_id,
            service_name=service,
        )
        for service, alias, status, offset, payload, chain in _COMMANDS
    ]
    return events, commands
