"""
Profile and SSP resolution.

Follows a profile's imports to their catalogs over HTTP, selects controls
with the include/exclude rules, and applies the profile's ``set-parameters``
and ``alters``. SSPs are resolved through their ``import-profile`` reference.
Fetched documents go through a per-session :class:`DocumentCache`.
"""

import asyncio
import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urljoin

import httpx
import structlog

from oscal_workbench.core.config import get_settings
from oscal_workbench.core.exceptions import (
    FetchFailureError,
    HttpError,
    OscalWorkbenchException,
    UnexpectedDocumentTypeError,
    UnresolvableReferenceError,
)
from oscal_workbench.models.oscal import (
    Alter,
    BackMatter,
    Control,
    DocumentType,
    OscalDocument,
    Part,
    Profile,
    ProfileImport,
    Remove,
    SetParameter,
    SystemSecurityPlan,
)
from oscal_workbench.models.resolution import (
    ImportSource,
    ImportStatus,
    ProfileMeta,
    ResolvedProfile,
    ResolvedSource,
    ResolvedSsp,
)
from oscal_workbench.services.controls import get_all_controls
from oscal_workbench.services.document_cache import DocumentCache
from oscal_workbench.services.href_parser import HrefType, parse_href
from oscal_workbench.services.parser import load_document_text

RewriteRule = Callable[[str], str]

GITHUB_BLOB_URL = re.compile(r"^https?://github\.com/([^/]+)/([^/]+)/blob/(.+)$")

# Parameter fields a set-parameter may replace.
OVERRIDABLE_PARAM_FIELDS = ("values", "label", "select", "constraints")


def to_raw_github_url(url: str) -> str:
    """Map a github.com blob URL to its raw.githubusercontent.com equivalent."""
    match = GITHUB_BLOB_URL.match(url)
    if match:
        owner, repo, rest = match.groups()
        return f"https://raw.githubusercontent.com/{owner}/{repo}/{rest}"
    return url


DEFAULT_REWRITE_RULES: Tuple[RewriteRule, ...] = (to_raw_github_url,)


def rewrite_url(url: str, rules: Sequence[RewriteRule] = DEFAULT_REWRITE_RULES) -> str:
    for rule in rules:
        url = rule(url)
    return url


def resolve_url(
    href: str,
    base_url: Optional[str] = None,
    rules: Sequence[RewriteRule] = DEFAULT_REWRITE_RULES,
) -> str:
    """Resolve an href to a fetchable URL.

    Absolute URLs lose their fragment, relative paths are joined onto
    ``base_url`` when one is given; anything else comes back unchanged.
    """
    parsed = parse_href(href)

    if parsed.type == HrefType.ABSOLUTE_URL:
        return rewrite_url(parsed.path, rules)

    if parsed.type == HrefType.RELATIVE and base_url:
        return rewrite_url(urljoin(base_url, href), rules)

    return href


def resolve_fragment_to_url(
    fragment: Optional[str],
    back_matter: Optional[BackMatter],
    base_url: Optional[str] = None,
    rules: Sequence[RewriteRule] = DEFAULT_REWRITE_RULES,
) -> Optional[str]:
    """Resolve ``#<uuid>`` through a back-matter resource, preferring a JSON rlink."""
    if not fragment or back_matter is None or not back_matter.resources:
        return None

    resource = next((r for r in back_matter.resources if r.uuid == fragment), None)
    if resource is None or not resource.rlinks:
        return None

    rlink = next(
        (r for r in resource.rlinks if r.media_type and "json" in r.media_type),
        resource.rlinks[0],
    )
    return resolve_url(rlink.href, base_url, rules)


def select_controls(imp: ProfileImport, controls: List[Control]) -> List[Control]:
    """Apply an import's include and exclude rules to a catalog's controls."""
    selected = controls
    if imp.include_all is None and imp.include_controls:
        ids = [cid for selector in imp.include_controls for cid in selector.with_ids or []]
        if ids:
            wanted = set(ids)
            selected = [c for c in controls if c.id in wanted]

    if imp.exclude_controls:
        excluded = {cid for selector in imp.exclude_controls for cid in selector.with_ids or []}
        selected = [c for c in selected if c.id not in excluded]

    return list(selected)


def _remove_matches(part: Part, remove: Remove) -> bool:
    if remove.by_name and part.name == remove.by_name:
        return True
    if remove.by_id and part.id == remove.by_id:
        return True
    if remove.by_class and part.class_ == remove.by_class:
        return True
    return False


def _directory_of(url: str) -> Optional[str]:
    if "/" not in url:
        return None
    return url[: url.rfind("/") + 1]


def _error_text(error: OscalWorkbenchException) -> str:
    """Error message for a resolution result, with any remediation hint appended."""
    remediation = error.details.get("remediation")
    if remediation:
        return f"{error.message}. {remediation}"
    return error.message


class ResolutionService:
    """Resolves profile and SSP references over HTTP."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        rewrite_rules: Optional[Sequence[RewriteRule]] = None,
    ) -> None:
        self.settings = get_settings()
        self.logger = structlog.get_logger(__name__)
        self.client = client or httpx.AsyncClient(
            timeout=self.settings.fetch_timeout_seconds,
            follow_redirects=self.settings.follow_redirects,
            headers={"User-Agent": self.settings.user_agent},
        )
        if rewrite_rules is None:
            rewrite_rules = DEFAULT_REWRITE_RULES if self.settings.rewrite_github_blob_urls else ()
        self.rewrite_rules: Tuple[RewriteRule, ...] = tuple(rewrite_rules)

    async def aclose(self) -> None:
        await self.client.aclose()

    def locate(
        self,
        href: str,
        base_url: Optional[str] = None,
        back_matter: Optional[BackMatter] = None,
    ) -> str:
        """
        Turn an href into the URL to fetch.

        Args:
            href: Href from an import, import-profile or source reference
            base_url: URL of the document the href appears in, if known
            back_matter: Back-matter used to resolve ``#<uuid>`` references

        Returns:
            Absolute URL to fetch

        Raises:
            UnresolvableReferenceError: For URNs, unknown back-matter resources,
                and relative references with no base URL
        """
        parsed = parse_href(href)

        if parsed.type == HrefType.URN:
            raise UnresolvableReferenceError(
                "URN references cannot be resolved",
                details={"href": href},
            )

        if parsed.type == HrefType.FRAGMENT:
            url = resolve_fragment_to_url(
                parsed.fragment, back_matter, base_url, self.rewrite_rules
            )
            if url is None:
                raise UnresolvableReferenceError(
                    f"Back-matter resource not found or has no rlinks: {href}",
                    details={"href": href},
                )
        else:
            url = resolve_url(href, base_url, self.rewrite_rules)

        if parse_href(url).type != HrefType.ABSOLUTE_URL:
            raise UnresolvableReferenceError(
                f"Relative reference cannot be resolved without a base URL: {href}",
                details={"href": href, "resolved": url},
            )
        return url

    async def fetch_document(self, url: str, cache: DocumentCache) -> OscalDocument:
        """
        Fetch and parse a document, going through the cache.

        Raises:
            FetchFailureError: When the server cannot be reached
            HttpError: On a non-2xx response
            MalformedInputError, UnrecognizedTypeError, MissingRequiredFieldError:
                When the body is not a usable OSCAL document
        """
        cached = cache.get(url)
        if cached is not None:
            self.logger.debug("Document cache hit", url=url)
            return cached

        self.logger.info("Fetching document", url=url)
        try:
            response = await self.client.get(url)
        except httpx.InvalidURL as e:
            raise UnresolvableReferenceError(
                f"Invalid URL: {url}",
                details={"url": url},
            ) from e
        except httpx.RequestError as e:
            self.logger.warning("Document fetch failed", url=url, error=str(e))
            raise FetchFailureError(
                "Network error: the server could not be reached or refused cross-origin access",
                details={"url": url, "reason": str(e)},
            ) from e

        if not response.is_success:
            self.logger.warning(
                "Document fetch returned error status",
                url=url,
                status_code=response.status_code,
            )
            raise HttpError(
                response.status_code,
                response.reason_phrase,
                details={"url": url},
            )

        document = load_document_text(response.text)
        cache.set(url, document)

        self.logger.info(
            "Document fetched",
            url=url,
            document_type=document.type.value,
            size_bytes=len(response.content),
        )
        return document

    @staticmethod
    def _require(document: OscalDocument, expected: DocumentType):
        if document.type != expected:
            raise UnexpectedDocumentTypeError(expected.value, document.type.value)
        return document.document

    async def _resolve_import(
        self,
        imp: ProfileImport,
        base_url: Optional[str],
        back_matter: Optional[BackMatter],
        cache: DocumentCache,
    ) -> Tuple[ImportSource, List[Control]]:
        resolved_url: Optional[str] = None
        try:
            resolved_url = self.locate(imp.href, base_url, back_matter)
            from_cache = cache.has(resolved_url)
            document = await self.fetch_document(resolved_url, cache)
            catalog = self._require(document, DocumentType.CATALOG)
            controls = select_controls(imp, get_all_controls(catalog))
        except OscalWorkbenchException as e:
            self.logger.warning(
                "Import could not be resolved",
                href=imp.href,
                resolved_url=resolved_url,
                error_code=e.error_code,
                error=e.message,
            )
            source = ImportSource(
                href=imp.href,
                resolved_url=resolved_url,
                status=ImportStatus.ERROR,
                control_count=0,
                error=_error_text(e),
            )
            return source, []

        source = ImportSource(
            href=imp.href,
            resolved_url=resolved_url,
            status=ImportStatus.CACHED if from_cache else ImportStatus.LOADED,
            control_count=len(controls),
        )
        return source, controls

    async def resolve_profile(
        self,
        profile: Profile,
        base_url: Optional[str],
        cache: DocumentCache,
    ) -> ResolvedProfile:
        """
        Resolve every import of a profile concurrently and apply its modifications.

        One failing import never aborts the others; each import yields exactly
        one source entry, in import order.
        """
        self.logger.info(
            "Resolving profile",
            profile_uuid=profile.uuid,
            import_count=len(profile.imports),
            base_url=base_url,
        )

        results = await asyncio.gather(
            *(
                self._resolve_import(imp, base_url, profile.back_matter, cache)
                for imp in profile.imports
            ),
            return_exceptions=True,
        )

        controls: List[Control] = []
        sources: List[ImportSource] = []
        errors: List[str] = []

        for imp, result in zip(profile.imports, results):
            if isinstance(result, Exception):
                message = str(result) or type(result).__name__
                self.logger.error(
                    "Unexpected error resolving import",
                    href=imp.href,
                    error=message,
                    exc_info=result,
                )
                errors.append(message)
                sources.append(ImportSource(
                    href=imp.href,
                    status=ImportStatus.ERROR,
                    control_count=0,
                    error=message,
                ))
                continue
            if isinstance(result, BaseException):
                raise result

            source, imported = result
            sources.append(source)
            controls.extend(imported)

        if profile.modify:
            if profile.modify.set_parameters:
                controls = self.apply_set_parameters(controls, profile.modify.set_parameters)
            if profile.modify.alters:
                controls = self.apply_alters(controls, profile.modify.alters)

        self.logger.info(
            "Profile resolved",
            profile_uuid=profile.uuid,
            control_count=len(controls),
            failed_imports=sum(1 for s in sources if s.status == ImportStatus.ERROR),
        )
        return ResolvedProfile(controls=controls, sources=sources, errors=errors)

    @staticmethod
    def apply_set_parameters(
        controls: List[Control],
        set_parameters: List[SetParameter],
    ) -> List[Control]:
        """Override parameter values, label, select and constraints by id.

        Controls with no matching parameter are returned as the same objects.
        """
        overrides: Dict[str, SetParameter] = {sp.param_id: sp for sp in set_parameters}

        result: List[Control] = []
        for control in controls:
            if not control.params or not any(p.id in overrides for p in control.params):
                result.append(control)
                continue

            params = []
            for param in control.params:
                override = overrides.get(param.id)
                if override is None:
                    params.append(param)
                    continue
                update = {
                    name: getattr(override, name)
                    for name in OVERRIDABLE_PARAM_FIELDS
                    if getattr(override, name) is not None
                }
                params.append(param.model_copy(update=update))

            result.append(control.model_copy(update={"params": params}))
        return result

    @staticmethod
    def apply_alters(controls: List[Control], alters: List[Alter]) -> List[Control]:
        """Apply every alter targeting a control: all removes first, then all adds."""
        alters_by_control: Dict[str, List[Alter]] = {}
        for alter in alters:
            alters_by_control.setdefault(alter.control_id, []).append(alter)

        result: List[Control] = []
        for control in controls:
            matching = alters_by_control.get(control.id)
            if not matching:
                result.append(control)
                continue

            parts = list(control.parts or [])
            props = list(control.props or [])

            for alter in matching:
                for remove in alter.removes or []:
                    parts = [p for p in parts if not _remove_matches(p, remove)]

            for alter in matching:
                for add in alter.adds or []:
                    if add.parts:
                        if add.position == "starting":
                            parts = list(add.parts) + parts
                        else:
                            parts = parts + list(add.parts)
                    if add.props:
                        props = props + list(add.props)

            update = {}
            if parts or control.parts is not None:
                update["parts"] = parts
            if props or control.props is not None:
                update["props"] = props
            result.append(control.model_copy(update=update))
        return result

    async def resolve_ssp(
        self,
        ssp: SystemSecurityPlan,
        base_url: Optional[str],
        cache: DocumentCache,
    ) -> ResolvedSsp:
        """Resolve an SSP's profile, then that profile's catalogs."""
        href = ssp.import_profile.href
        self.logger.info("Resolving SSP", ssp_uuid=ssp.uuid, import_profile=href)

        try:
            resolved_url = self.locate(href, base_url, ssp.back_matter)
            document = await self.fetch_document(resolved_url, cache)
            profile: Profile = self._require(document, DocumentType.PROFILE)
        except OscalWorkbenchException as e:
            self.logger.warning(
                "SSP profile could not be resolved",
                href=href,
                error_code=e.error_code,
                error=e.message,
            )
            return ResolvedSsp(errors=[_error_text(e)])

        # The profile's own relative imports resolve against its location.
        profile_base = _directory_of(resolved_url) or base_url
        resolved = await self.resolve_profile(profile, profile_base, cache)

        return ResolvedSsp(
            profile_meta=ProfileMeta(
                title=profile.metadata.title,
                version=profile.metadata.version,
                import_count=len(profile.imports),
            ),
            catalog_sources=resolved.sources,
            controls=resolved.controls,
            merge=profile.merge,
            modify=profile.modify,
            errors=resolved.errors,
        )

    async def resolve_source(
        self,
        href: str,
        base_url: Optional[str],
        cache: DocumentCache,
        back_matter: Optional[BackMatter] = None,
    ) -> ResolvedSource:
        """Summarize the document behind an href without requiring a type."""
        resolved_url: Optional[str] = None
        try:
            resolved_url = self.locate(href, base_url, back_matter)
            from_cache = cache.has(resolved_url)
            document = await self.fetch_document(resolved_url, cache)
        except OscalWorkbenchException as e:
            self.logger.warning(
                "Source could not be resolved",
                href=href,
                error_code=e.error_code,
                error=e.message,
            )
            return ResolvedSource(
                href=href,
                resolved_url=resolved_url,
                title=href,
                status=ImportStatus.ERROR,
                error=_error_text(e),
            )

        return ResolvedSource(
            href=href,
            resolved_url=resolved_url,
            title=document.title,
            document_type=document.type,
            version=document.metadata.version,
            status=ImportStatus.CACHED if from_cache else ImportStatus.LOADED,
        )


# Global service instance
_resolution_service: Optional[ResolutionService] = None


def get_resolution_service() -> ResolutionService:
    """Get the global resolution service instance."""
    global _resolution_service
    if _resolution_service is None:
        _resolution_service = ResolutionService()
    return _resolution_service


async def close_resolution_service() -> None:
    """Close the global resolution service's HTTP client."""
    global _resolution_service
    if _resolution_service is not None:
        await _resolution_service.aclose()
        _resolution_service = None
