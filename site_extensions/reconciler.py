"""Latest-version reconciliation for installed site extensions."""

from __future__ import annotations

import logging

from site_extensions.catalog import CatalogUnavailable, RemoteCatalog
from site_extensions.models import ExtensionInfo
from site_extensions.versioning import VersionError, versions_equal

logger = logging.getLogger(__name__)


class VersionReconciler:
    """Compare installed versions against the catalog's latest.

    A catalog failure leaves ``is_latest_version`` as it was: being unable
    to reach the catalog is not evidence that a newer version exists.
    """

    def __init__(self, catalog: RemoteCatalog):
        self.catalog = catalog

    def reconcile(self, info: ExtensionInfo, eager: bool = True) -> ExtensionInfo:
        """Update an installed extension's latest-version state in place.

        Args:
            info: Locally installed extension.
            eager: Also attach the catalog's latest descriptor as
                ``latest_info``; otherwise only the flag is refreshed.

        Returns:
            The same ExtensionInfo, updated.
        """
        try:
            latest = self.catalog.find(info.id)
        except CatalogUnavailable as e:
            logger.warning("Could not reconcile %s with catalog: %s", info.id, e)
            return info

        if latest is None:
            logger.debug("%s is not published in the catalog", info.id)
            return info

        try:
            info.is_latest_version = versions_equal(info.version, latest.version)
        except VersionError as e:
            logger.warning("Could not compare versions of %s: %s", info.id, e)
            return info

        if eager:
            info.latest_info = latest
        return info
