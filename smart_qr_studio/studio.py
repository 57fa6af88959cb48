"""Studio session: the controller between user edits and renders.

Each edit produces a new immutable :class:`Configuration` snapshot and a
revision number, and listeners are notified with the snapshot. Preview and
export both start from the latest snapshot and compute their own geometry.
"""

import logging
import os
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import replace
from typing import Any, Callable

from PIL import Image

from smart_qr_studio.contact import ContactCard, is_vcard, parse_vcard
from smart_qr_studio.export import ExportFormat, export_bytes, export_filename, write_export
from smart_qr_studio.history import HistoryStore
from smart_qr_studio.image_utils import try_load_background_image
from smart_qr_studio.model import BackgroundImage, Configuration, GeneratedItem, ValidationError, new_configuration
from smart_qr_studio.preview import PreviewRenderer
from smart_qr_studio.suggestion import BaseSuggestionClient, Suggestion, get_client

logger = logging.getLogger(__name__)

Listener = Callable[[Configuration, int], None]
BackgroundLoader = Callable[[str], "Image.Image | None"]


def _source(config: Configuration) -> str | None:
    return config.background_image.source if config.background_image else None


class Studio:
    """Holds the current configuration snapshot and drives preview/export.

    Args:
        history: Saved-item store, or None to disable saving.
        suggestion_client: Suggestion backend; defaults to the offline client.
        preview: Preview renderer.
        background_loader: Loads a background source; returns None on failure.
        config: Initial configuration (defaults table when omitted).
    """

    def __init__(
        self,
        history: HistoryStore | None = None,
        suggestion_client: BaseSuggestionClient | None = None,
        preview: PreviewRenderer | None = None,
        background_loader: BackgroundLoader = try_load_background_image,
        config: Configuration | None = None,
    ):
        self._history = history
        self._suggestions = suggestion_client or get_client(None)
        self._preview = preview or PreviewRenderer()
        self._load_background = background_loader
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="smart-qr-bg")

        self._config = config or new_configuration()
        self._revision = 0
        self._listeners: list[Listener] = []
        self._editing_id: str | None = None

        self._background: tuple[str, Image.Image] | None = None
        self._pending: tuple[str, Future] | None = None
        self._preview_cache: tuple[int, Image.Image | None, str] | None = None

        if _source(self._config):
            self._request_background(_source(self._config))

    # -- snapshot & notifications ----------------------------------------

    @property
    def config(self) -> Configuration:
        return self._config

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def editing_id(self) -> str | None:
        return self._editing_id

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(config, revision)`` after every change.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._config, self._revision)

    def set_config(self, config: Configuration) -> Configuration:
        """Make ``config`` the current snapshot."""
        previous_source = _source(self._config)
        self._config = config
        self._revision += 1
        self._preview_cache = None
        new_source = _source(config)
        if new_source != previous_source:
            self._background = None
            if new_source:
                self._request_background(new_source)
        self._notify()
        return config

    def update(self, **changes: Any) -> Configuration:
        """Apply field changes to a copy of the current snapshot."""
        return self.set_config(self._config.evolve(**changes))

    def set_background(self, source: str | None, **options: Any) -> Configuration:
        """Set (or clear, with None) the background image source."""
        if not source:
            return self.update(background_image=None)
        current = self._config.background_image
        base = current if current is not None else BackgroundImage(source)
        return self.update(background_image=BackgroundImage(
            source=source,
            opacity=options.get("opacity", base.opacity),
            fit=options.get("fit", base.fit),
            zoom=options.get("zoom", base.zoom),
        ))

    # -- background loading ----------------------------------------------

    def _request_background(self, source: str) -> None:
        logger.debug("Loading background image %s", source[:80])
        future = self._executor.submit(self._load_background, source)
        self._pending = (source, future)
        future.add_done_callback(lambda f: self._on_background_loaded(source, f))

    def _on_background_loaded(self, source: str, future: Future) -> None:
        if future.cancelled():
            return
        if _source(self._config) != source:
            logger.debug("Discarding stale background image %s", source[:80])
            return
        error = future.exception()
        if error is not None:
            logger.warning("Background image skipped: %s", error)
            return
        image = future.result()
        if image is not None:
            self._background = (source, image)

    def wait_for_background(self, timeout: float | None = None) -> Image.Image | None:
        """Block until the pending background load (if any) has finished.

        A load that fails or is still running after ``timeout`` seconds is
        logged, and None is returned so rendering continues without it.
        """
        pending = self._pending
        if pending is None or pending[0] != _source(self._config):
            return self.background_image
        source, future = pending
        try:
            error = future.exception(timeout=timeout)
        except TimeoutError:
            logger.warning("Background image %s not loaded after %ss; skipping it", source[:80], timeout)
            return None
        except CancelledError:
            return None
        if error is None:
            image = future.result()
            if image is not None:
                self._background = (source, image)
        return self.background_image

    @property
    def background_image(self) -> Image.Image | None:
        """The loaded image for the current source, or None."""
        if self._background and self._background[0] == _source(self._config):
            return self._background[1]
        return None

    # -- preview -----------------------------------------------------------

    def preview_svg(self) -> str:
        """SVG for the latest snapshot.

        Only the newest revision is ever rendered; edits made between two
        calls collapse into one render.
        """
        background = self.background_image
        cached = self._preview_cache
        if cached and cached[0] == self._revision and cached[1] is background:
            return cached[2]
        svg = self._preview.render_svg(self._config, background)
        self._preview_cache = (self._revision, background, svg)
        return svg

    # -- suggestions & structured content --------------------------------

    def apply_suggestion(self) -> Suggestion:
        """Fetch a suggestion for the current URL and apply title, description and colour.

        Raises:
            ValidationError: If the content is not an http(s) URL.
        """
        url = self._config.content.strip()
        if not url.startswith("http"):
            raise ValidationError("Suggestions need a valid URL starting with http.")
        suggestion = self._suggestions.suggest(url)
        self.update(
            title=replace(self._config.title, text=suggestion.title),
            description=suggestion.description,
            foreground=suggestion.suggested_color,
        )
        return suggestion

    def set_contact(self, card: ContactCard) -> Configuration:
        return self.update(content=card.to_vcard())

    def contact(self) -> ContactCard | None:
        """Parse the current content back into a contact form, if it is one."""
        if is_vcard(self._config.content):
            return parse_vcard(self._config.content)
        return None

    # -- saved items -------------------------------------------------------

    def _require_history(self) -> HistoryStore:
        if self._history is None:
            raise RuntimeError("This studio has no history store.")
        return self._history

    def save(self) -> GeneratedItem:
        """Save the snapshot; while editing a saved item, update it in place."""
        history = self._require_history()
        if self._editing_id and history.get(self._editing_id):
            item = history.update(self._editing_id, self._config)
        else:
            item = history.add(self._config)
        self._editing_id = None
        return item

    def edit(self, item_id: str) -> Configuration:
        """Load a saved item into the studio for editing."""
        item = self._require_history().get(item_id)
        if item is None:
            raise KeyError(item_id)
        self._editing_id = item_id
        return self.set_config(item.config)

    def delete(self, item_id: str) -> bool:
        if self._editing_id == item_id:
            self._editing_id = None
        return self._require_history().delete(item_id)

    # -- export ------------------------------------------------------------

    def export_bytes(self, fmt: ExportFormat | str = ExportFormat.PNG, timeout: float | None = None) -> bytes:
        """Export the snapshot once its background image (if any) has loaded."""
        config = self._config
        background = self.wait_for_background(timeout)
        return export_bytes(config, fmt, background)

    def export(self, fmt: ExportFormat | str = ExportFormat.PNG, directory: str = ".",
               filename: str | None = None, timeout: float | None = None) -> str:
        config = self._config
        background = self.wait_for_background(timeout)
        name = filename or export_filename(config.symbology, fmt)
        return write_export(config, fmt, os.path.join(directory, name), background)

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "Studio":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
