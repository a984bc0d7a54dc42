"""AWS Lambda entry point.

Mangum translates API Gateway HTTP API (v2) events into ASGI,
letting the console app run unchanged on Lambda.
"""

from mangum import Mangum

from policy_console.main import app

handler = Mangum(app, lifespan="off")
