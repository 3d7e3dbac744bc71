"""
Per-request pipeline.

Received → Normalized → Classified → AccessChecked → Rewritten → Forwarded,
ending Completed, Rejected (403 at the access check) or Failed (500/413 at
forwarding).
"""

import logging

from .core.classify import GitHubResource, classify
from .core.config import ConfigProvider, ConfigSnapshot
from .core.policy import decide
from .core.rewrite import normalize_target, rewrite
from .errors import PolicyDenied, ProxyError
from .exchange import InboundRequest, ProxyResponse, State
from .forward import ForwardingEngine

logger = logging.getLogger(__name__)


class RequestPipeline:
    """Runs every inbound request through classification, policy and forwarding."""

    def __init__(self, config: ConfigProvider, engine: ForwardingEngine | None = None):
        self.config = config
        self.engine = engine if engine is not None else ForwardingEngine()

    def handle(self, inbound: InboundRequest) -> ProxyResponse:
        """Produce the response for one request. Never raises."""
        state = State.RECEIVED
        try:
            target = normalize_target(inbound.path)
            state = State.NORMALIZED

            resource = classify(target)
            state = State.CLASSIFIED

            self.check_access(resource, target, self.config.current())
            state = State.ACCESS_CHECKED

            target = rewrite(target, resource)
            state = State.REWRITTEN

            response = self.engine.forward(inbound, target, self.config.current().size_limit)
            state = State.FORWARDED
            return response

        except PolicyDenied as e:
            logger.info("Denied %s %s: %s", inbound.method, inbound.path, e.message)
            return ProxyResponse.text(e.status, e.message, State.REJECTED)
        except ProxyError as e:
            return ProxyResponse.text(e.status, e.message, State.FAILED)
        except Exception as e:
            logger.exception("Unexpected error in state %s for %s", state.value, inbound.path)
            return ProxyResponse.text(500, f"Internal proxy error: {e}", State.FAILED)

    def check_access(self, resource: GitHubResource | None, target: str, snapshot: ConfigSnapshot) -> None:
        """
        Apply the access lists of one snapshot.

        Raises:
            PolicyDenied: If the target may not be proxied
        """
        decision = decide(resource, target, snapshot)
        if not decision.allowed:
            raise PolicyDenied(decision.reason)
