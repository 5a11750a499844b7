"""Host-configuration descriptor for installed site extensions.

The host applies ``applicationHost.xdt`` from an installation directory to
mount the extension as an application. When a package ships no descriptor,
a default one is built here: remove any application at ``/{id}`` and insert
a fresh one whose virtual root is the installation directory.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

DESCRIPTOR_FILE_NAME = "applicationHost.xdt"

XDT_NAMESPACE = "http://schemas.microsoft.com/XML-Document-Transform"
SITE_NAME_PLACEHOLDER = "%XDT_SITENAME%"
APP_POOL_PLACEHOLDER = "%XDT_APPPOOLNAME%"


@dataclass(frozen=True)
class RemoveApplication:
    """Remove the application mounted at a path."""

    path: str


@dataclass(frozen=True)
class InsertApplication:
    """Insert an application at a path, rooted at a physical directory."""

    path: str
    physical_path: str


Rule = Union[RemoveApplication, InsertApplication]


@dataclass
class TransformDocument:
    """Ordered application rules for one site.

    Site and application-pool names stay as placeholders; the host fills
    them in at activation time.
    """

    site_name: str = SITE_NAME_PLACEHOLDER
    app_pool_name: str = APP_POOL_PLACEHOLDER
    rules: list[Rule] = field(default_factory=list)

    def remove_application(self, path: str) -> TransformDocument:
        self.rules.append(RemoveApplication(path))
        return self

    def insert_application(self, path: str, physical_path: str) -> TransformDocument:
        self.rules.append(InsertApplication(path, physical_path))
        return self


def build_default_descriptor(package_id: str, installation_path: Path | str) -> TransformDocument:
    """Build the default two-rule descriptor for an extension.

    Args:
        package_id: Package id; the application is mounted at ``/{id}``.
        installation_path: Directory the application's virtual root points at.
    """
    app_path = f"/{package_id}"
    return (
        TransformDocument()
        .remove_application(app_path)
        .insert_application(app_path, str(installation_path))
    )


def _xdt(name: str) -> str:
    return f"{{{XDT_NAMESPACE}}}{name}"


def render_xdt(document: TransformDocument) -> str:
    """Serialize a descriptor as an XML Document Transform."""
    ET.register_namespace("xdt", XDT_NAMESPACE)

    configuration = ET.Element("configuration")
    host = ET.SubElement(configuration, "system.applicationHost")
    sites = ET.SubElement(host, "sites")
    site = ET.SubElement(sites, "site", {"name": document.site_name})
    site.set(_xdt("Locator"), "Match(name)")

    for rule in document.rules:
        if isinstance(rule, RemoveApplication):
            app = ET.SubElement(site, "application", {"path": rule.path})
            app.set(_xdt("Locator"), "Match(path)")
            app.set(_xdt("Transform"), "Remove")
        elif isinstance(rule, InsertApplication):
            app = ET.SubElement(
                site,
                "application",
                {"path": rule.path, "applicationPool": document.app_pool_name},
            )
            app.set(_xdt("Transform"), "Insert")
            ET.SubElement(
                app,
                "virtualDirectory",
                {"path": "/", "physicalPath": rule.physical_path},
            )
        else:
            raise TypeError(f"Unknown descriptor rule: {rule!r}")

    ET.indent(configuration)
    body = ET.tostring(configuration, encoding="unicode")
    return f'<?xml version="1.0"?>\n{body}\n'


def write_default_descriptor(package_id: str, install_dir: Path) -> Path:
    """Write the default descriptor into an installation directory.

    Returns:
        Path of the written descriptor.
    """
    target = install_dir / DESCRIPTOR_FILE_NAME
    document = build_default_descriptor(package_id, install_dir)
    target.write_text(render_xdt(document), encoding="utf-8")
    return target
