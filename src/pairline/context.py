"""Process-scoped application context.

Builds and owns every stateful component so that handlers receive them
explicitly instead of reaching for module-level globals.
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from pairline.config import Config
from pairline.link.credentials import CredentialStore
from pairline.link.protocols import LinkClientFactory
from pairline.link.retry import RetryScheduler, Scheduler
from pairline.link.supervisor import LinkSupervisor, load_link_client
from pairline.link.tracker import ConnectionTracker
from pairline.pairing.codes import CodeGenerator
from pairline.pairing.expiry import ExpiryWorker
from pairline.pairing.reconciler import Reconciler
from pairline.pairing.store import RetentionPolicy, SessionStore
from pairline.qr import QrRenderer
from pairline.service import PairingService


@dataclass
class AppContext:
    """All pairing and link components of one process."""

    config: Config
    store: SessionStore
    expiry_worker: ExpiryWorker
    reconciler: Reconciler
    credentials: CredentialStore
    tracker: ConnectionTracker
    supervisor: LinkSupervisor
    qr_renderer: QrRenderer
    service: PairingService

    @classmethod
    def from_config(
        cls,
        config: Config,
        link_factory: Optional[LinkClientFactory] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], float] = time.time,
    ) -> "AppContext":
        """Wire up a context from configuration.

        Args:
            config: Service configuration.
            link_factory: Link client factory. Defaults to the one named by
                ``config.link.client``, if any.
            scheduler: Retry scheduler (injectable for testing).
            clock: Time source shared by every component.

        Raises:
            ValueError: If the configured retention policy or link client
                is invalid.
        """
        pairing = config.pairing
        link = config.link

        if link_factory is None and link.client:
            link_factory = load_link_client(link.client)

        store = SessionStore(
            generator=CodeGenerator(length=pairing.code_length, clock=clock),
            ttl=pairing.code_ttl,
            session_prefix=pairing.session_prefix,
            retention=RetentionPolicy(pairing.retention),
            terminal_retention=pairing.terminal_retention,
            clock=clock,
        )
        reconciler = Reconciler(store)
        credentials = CredentialStore(Path(link.auth_dir).expanduser())
        tracker = ConnectionTracker(
            reconciler=reconciler,
            credentials=credentials,
            scheduler=scheduler or RetryScheduler(),
            reconnect_delay=link.reconnect_delay,
            init_retry_delay=link.init_retry_delay,
            max_retries=link.max_retries,
        )
        qr_renderer = QrRenderer()
        supervisor = LinkSupervisor(
            tracker=tracker,
            credentials=credentials,
            factory=link_factory,
            qr_renderer=qr_renderer,
            print_qr_in_terminal=link.print_qr_in_terminal,
            reset_credentials_on_start=link.reset_credentials_on_start,
        )
        service = PairingService(
            store=store,
            tracker=tracker,
            qr_renderer=qr_renderer,
            country_code=pairing.country_code,
            phone_pattern=pairing.phone_pattern,
            reuse_pending_codes=pairing.reuse_pending_codes,
        )

        return cls(
            config=config,
            store=store,
            expiry_worker=ExpiryWorker(
                store, sweep_interval=pairing.sweep_interval, clock=clock
            ),
            reconciler=reconciler,
            credentials=credentials,
            tracker=tracker,
            supervisor=supervisor,
            qr_renderer=qr_renderer,
            service=service,
        )
