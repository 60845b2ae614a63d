"""AWS Lambda entry point.

Mangum adapts API Gateway events to ASGI so the proxy app runs on Lambda
without changes. Lifespan is off: Lambda has no shutdown hook, so the
upstream client is created lazily on the first request.
"""

from mangum import Mangum

from ai_proxy.main import app

handler = Mangum(app, lifespan="off")
