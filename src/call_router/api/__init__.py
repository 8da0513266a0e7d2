"""API routers.

- health: liveness and readiness probes
- voice: Twilio voice webhooks (TwiML responses)
- routing: routing configuration and outbound calls for the dashboard
- calls: call record lookup
"""
