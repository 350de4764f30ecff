#!/usr/bin/env python3
"""
APK Store - Qt storefront window.

A PyQt6 window that mirrors the live catalog, filters it as the user
types and opens a details dialog for the chosen app.
"""
from __future__ import annotations

import sys
import logging
from typing import Optional, List, Callable, Set

from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QLabel, QPushButton, QLineEdit, QScrollArea, QFrame, QDialog,
    QProgressBar, QGridLayout, QSizePolicy,
)
from PyQt6.QtCore import Qt, QThread, QUrl, pyqtSignal, pyqtSlot
from PyQt6.QtGui import QDesktopServices, QFont, QPixmap

from common.logging_config import setup_logging
from common.resources import register_cleanup, cleanup_all

from apkstore import theme
from apkstore.app_catalog import AppView
from apkstore.catalog_sync import CatalogSync, SyncState
from apkstore.config import StoreConfig
from apkstore.images import try_fetch_image
from apkstore.view_model import (
    CatalogViewModel, PageModel, LOADING_MESSAGE, ERROR_TITLE,
    EMPTY_TITLE, EMPTY_HINT,
)

logger = logging.getLogger(__name__)


class ImageLoader(QThread):
    """
    Background thread fetching one image.

    Loaders are unparented and kept in a class-level set until they finish,
    so a card deleted mid-fetch never destroys a running thread.
    """
    loaded = pyqtSignal(bytes)
    failed = pyqtSignal(str)

    _active: Set["ImageLoader"] = set()

    def __init__(self, url: str, timeout: float = 10.0):
        super().__init__()
        self.url = url
        self.timeout = timeout
        ImageLoader._active.add(self)
        self.finished.connect(self._forget)

    def _forget(self):
        ImageLoader._active.discard(self)

    @classmethod
    def wait_all(cls, msecs: int = 2000):
        for loader in list(cls._active):
            loader.wait(msecs)

    def run(self):
        data = try_fetch_image(self.url, timeout=self.timeout)
        if data is None:
            self.failed.emit(self.url)
        else:
            self.loaded.emit(data)


class RemoteImage(QLabel):
    """
    Label showing a remote image.

    On failure it tries ``fallback_url`` once, or hides itself when no
    fallback is given.
    """

    def __init__(self, url: str, size: int, fallback_url: Optional[str] = None,
                 timeout: float = 10.0, parent=None):
        super().__init__(parent)
        self._size = size
        self._fallback_url = fallback_url
        self._timeout = timeout

        self.setFixedHeight(size)
        self.setMinimumWidth(size)
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setStyleSheet(
            f"background-color: {theme.color('dark.700')}; border-radius: 12px;"
        )
        self._load(url)

    def _load(self, url: str):
        worker = ImageLoader(url, self._timeout)
        worker.loaded.connect(self._on_loaded)
        worker.failed.connect(self._on_failed)
        worker.start()

    @pyqtSlot(bytes)
    def _on_loaded(self, data: bytes):
        pixmap = QPixmap()
        if not pixmap.loadFromData(data):
            self._on_failed("undecodable image")
            return
        self.setPixmap(pixmap.scaledToHeight(
            self._size, Qt.TransformationMode.SmoothTransformation
        ))

    @pyqtSlot(str)
    def _on_failed(self, reason: str):
        if self._fallback_url:
            url, self._fallback_url = self._fallback_url, None
            self._load(url)
        else:
            self.setVisible(False)


class AppCard(QFrame):
    """Summary card for one app."""

    def __init__(self, view: AppView, on_select: Callable[[], None], timeout: float = 10.0):
        super().__init__()
        self.view = view
        self._on_select = on_select

        self.setStyleSheet(theme.card_stylesheet())
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(8)

        header = QHBoxLayout()
        header.setSpacing(12)
        self.icon = RemoteImage(view.icon_url, 64, view.fallback_icon_url, timeout)
        header.addWidget(self.icon)

        info = QVBoxLayout()
        info.setSpacing(2)

        self.name_label = QLabel(view.name)
        self.name_label.setFont(QFont("", 12, QFont.Weight.Bold))
        info.addWidget(self.name_label)

        self.category_label = QLabel(view.category)
        self.category_label.setStyleSheet(theme.chip_stylesheet())
        self.category_label.setSizePolicy(QSizePolicy.Policy.Maximum, QSizePolicy.Policy.Fixed)
        info.addWidget(self.category_label)

        self.meta_label = QLabel(f"{view.version_label}  •  {view.size_label}")
        self.meta_label.setStyleSheet(f"color: {theme.TEXT_DIM}; font-size: 11px;")
        info.addWidget(self.meta_label)

        header.addLayout(info, 1)
        layout.addLayout(header)

        description = view.description
        if len(description) > 140:
            description = description[:137] + "..."
        self.description_label = QLabel(description)
        self.description_label.setWordWrap(True)
        self.description_label.setStyleSheet(f"color: {theme.TEXT_MUTED}; font-size: 12px;")
        layout.addWidget(self.description_label)

        footer = QHBoxLayout()
        self.downloads_label = QLabel(view.downloads_label)
        self.downloads_label.setStyleSheet(f"color: {theme.TEXT_DIM}; font-size: 11px;")
        footer.addWidget(self.downloads_label)
        footer.addStretch()

        self.view_btn = QPushButton("View")
        self.view_btn.setStyleSheet(theme.primary_button_stylesheet())
        self.view_btn.clicked.connect(lambda: self._on_select())
        footer.addWidget(self.view_btn)
        layout.addLayout(footer)

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self._on_select()
        super().mouseReleaseEvent(event)


class InfoRow(QWidget):
    """Label/value row in the details dialog."""

    def __init__(self, label: str, value: str):
        super().__init__()
        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 4, 0, 4)

        name = QLabel(label)
        name.setStyleSheet(f"color: {theme.TEXT_MUTED};")
        layout.addWidget(name)
        layout.addStretch()

        self.value_label = QLabel(value)
        self.value_label.setFont(QFont("", 10, QFont.Weight.DemiBold))
        layout.addWidget(self.value_label)


class AppDetailsDialog(QDialog):
    """Full details for one app, with the APK download action."""

    def __init__(self, view: AppView, parent=None, timeout: float = 10.0):
        super().__init__(parent)
        self.view = view
        self.setWindowTitle(view.name)
        self.setMinimumSize(720, 560)
        self.setStyleSheet(theme.window_stylesheet())

        outer = QVBoxLayout(self)
        outer.setContentsMargins(0, 0, 0, 0)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        outer.addWidget(scroll)

        body = QWidget()
        layout = QVBoxLayout(body)
        layout.setContentsMargins(32, 24, 32, 24)
        layout.setSpacing(20)
        scroll.setWidget(body)

        # Header: icon, name, category, developer
        header = QHBoxLayout()
        header.setSpacing(20)
        header.addWidget(RemoteImage(view.icon_url, 112, view.fallback_icon_url, timeout))

        title_box = QVBoxLayout()
        self.name_label = QLabel(view.name)
        self.name_label.setFont(QFont("", 20, QFont.Weight.Bold))
        title_box.addWidget(self.name_label)

        subtitle = QHBoxLayout()
        category = QLabel(view.category)
        category.setStyleSheet(theme.chip_stylesheet())
        subtitle.addWidget(category)
        self.developer_label = QLabel(view.developer)
        self.developer_label.setStyleSheet(f"color: {theme.TEXT_MUTED};")
        subtitle.addWidget(self.developer_label)
        subtitle.addStretch()
        title_box.addLayout(subtitle)
        header.addLayout(title_box, 1)

        self.close_btn = QPushButton("Close")
        self.close_btn.clicked.connect(self.reject)
        header.addWidget(self.close_btn, 0, Qt.AlignmentFlag.AlignTop)
        layout.addLayout(header)

        # Stats and download
        actions = QHBoxLayout()
        actions.setSpacing(32)
        for value, caption in (
            (view.downloads_count, "DOWNLOADS"),
            (view.size_label, "SIZE"),
            (view.version_label, "VERSION"),
        ):
            stat = QVBoxLayout()
            value_label = QLabel(value)
            value_label.setFont(QFont("", 13, QFont.Weight.Bold))
            value_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
            stat.addWidget(value_label)
            caption_label = QLabel(caption)
            caption_label.setStyleSheet(f"color: {theme.TEXT_DIM}; font-size: 10px;")
            caption_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
            stat.addWidget(caption_label)
            actions.addLayout(stat)
        actions.addStretch()

        self.download_btn = QPushButton("Download APK")
        self.download_btn.setStyleSheet(theme.primary_button_stylesheet())
        self.download_btn.setEnabled(view.can_download)
        self.download_btn.clicked.connect(self._on_download)
        actions.addWidget(self.download_btn)
        layout.addLayout(actions)

        # About
        about_title = QLabel("About this app")
        about_title.setFont(QFont("", 14, QFont.Weight.Bold))
        layout.addWidget(about_title)
        self.description_label = QLabel(view.description)
        self.description_label.setWordWrap(True)
        self.description_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        self.description_label.setStyleSheet(f"color: {theme.TEXT_MUTED};")
        layout.addWidget(self.description_label)

        # Screenshots
        self.screenshots: List[RemoteImage] = []
        if view.screenshot_urls:
            shots_title = QLabel("Screenshots")
            shots_title.setFont(QFont("", 14, QFont.Weight.Bold))
            layout.addWidget(shots_title)

            strip = QWidget()
            strip_layout = QHBoxLayout(strip)
            strip_layout.setContentsMargins(0, 0, 0, 0)
            strip_layout.setSpacing(12)
            for url in view.screenshot_urls:
                shot = RemoteImage(url, 256, None, timeout)
                self.screenshots.append(shot)
                strip_layout.addWidget(shot)
            strip_layout.addStretch()

            strip_scroll = QScrollArea()
            strip_scroll.setWidgetResizable(True)
            strip_scroll.setFixedHeight(280)
            strip_scroll.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
            strip_scroll.setWidget(strip)
            layout.addWidget(strip_scroll)

        # Information
        info_title = QLabel("Information")
        info_title.setFont(QFont("", 13, QFont.Weight.DemiBold))
        layout.addWidget(info_title)
        self.info_rows = {
            "Released": InfoRow("Released", view.released),
            "License": InfoRow("License", view.license),
            "Category": InfoRow("Category", view.category),
        }
        for row in self.info_rows.values():
            layout.addWidget(row)
        layout.addStretch()

    def _on_download(self):
        if not self.view.apk_url:
            return
        logger.info(f"Opening APK download for {self.view.id}")
        QDesktopServices.openUrl(QUrl(self.view.apk_url))


class StoreWindow(QMainWindow):
    """Main storefront window."""

    sync_state_changed = pyqtSignal(object)

    def __init__(self, sync: CatalogSync, config: Optional[StoreConfig] = None):
        super().__init__()
        self.sync = sync
        self.config = config or StoreConfig()
        self.view_model = CatalogViewModel(sync.state())

        self.setWindowTitle("APK Store")
        self.setMinimumSize(1000, 700)
        self.setStyleSheet(theme.window_stylesheet())

        self._cards: List[AppCard] = []
        self._shown_records: tuple = ()
        self._shown_views: tuple = ()
        self._dialog: Optional[AppDetailsDialog] = None

        self._build_ui()

        # Snapshots arrive on Firestore's thread; the signal queues them
        # onto the GUI thread.
        self.sync_state_changed.connect(self._on_sync_state)
        self._unsubscribe = sync.subscribe(self.sync_state_changed.emit)
        self.view_model.on_change(self._render)
        self._render(self.view_model.page())

    def _build_ui(self):
        central = QWidget()
        self.setCentralWidget(central)

        main_layout = QVBoxLayout(central)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        # Header bar
        header = QWidget()
        header.setFixedHeight(64)
        header.setStyleSheet(f"background-color: {theme.color('dark.800')};")
        header_layout = QHBoxLayout(header)
        header_layout.setContentsMargins(24, 8, 24, 8)

        title = QLabel("AppStore")
        title.setFont(QFont("", 16, QFont.Weight.Bold))
        title.setStyleSheet(f"color: {theme.color('primary.500')};")
        header_layout.addWidget(title)
        header_layout.addStretch()

        self.search_box = QLineEdit()
        self.search_box.setPlaceholderText("Search apps...")
        self.search_box.setMinimumWidth(360)
        self.search_box.textChanged.connect(self.view_model.set_query)
        header_layout.addWidget(self.search_box)

        main_layout.addWidget(header)

        content = QWidget()
        content_layout = QVBoxLayout(content)
        content_layout.setContentsMargins(24, 24, 24, 24)
        content_layout.setSpacing(16)

        heading = QHBoxLayout()
        featured = QLabel("Featured Apps")
        featured.setFont(QFont("", 20, QFont.Weight.Bold))
        heading.addWidget(featured)
        heading.addStretch()
        self.count_label = QLabel()
        self.count_label.setStyleSheet(f"color: {theme.TEXT_MUTED};")
        heading.addWidget(self.count_label)
        content_layout.addLayout(heading)

        # Error banner
        self.banner = QFrame()
        self.banner.setStyleSheet(theme.banner_stylesheet())
        banner_layout = QVBoxLayout(self.banner)
        banner_title = QLabel(ERROR_TITLE)
        banner_title.setFont(QFont("", 10, QFont.Weight.Bold))
        banner_title.setAlignment(Qt.AlignmentFlag.AlignCenter)
        banner_layout.addWidget(banner_title)
        self.banner_message = QLabel()
        self.banner_message.setWordWrap(True)
        self.banner_message.setAlignment(Qt.AlignmentFlag.AlignCenter)
        banner_layout.addWidget(self.banner_message)
        content_layout.addWidget(self.banner)

        # Loading indicator
        self.spinner = QWidget()
        spinner_layout = QVBoxLayout(self.spinner)
        spinner_layout.setAlignment(Qt.AlignmentFlag.AlignCenter)
        busy = QProgressBar()
        busy.setRange(0, 0)
        busy.setFixedWidth(240)
        busy.setTextVisible(False)
        spinner_layout.addWidget(busy, 0, Qt.AlignmentFlag.AlignCenter)
        loading_label = QLabel(LOADING_MESSAGE)
        loading_label.setStyleSheet(f"color: {theme.TEXT_MUTED};")
        spinner_layout.addWidget(loading_label, 0, Qt.AlignmentFlag.AlignCenter)
        content_layout.addWidget(self.spinner)

        # Apps grid
        self.scroll = QScrollArea()
        self.scroll.setWidgetResizable(True)
        self.apps_container = QWidget()
        self.apps_layout = QGridLayout(self.apps_container)
        self.apps_layout.setSpacing(16)
        self.apps_layout.setAlignment(Qt.AlignmentFlag.AlignTop)
        self.scroll.setWidget(self.apps_container)
        content_layout.addWidget(self.scroll, 1)

        # Empty state
        self.empty_state = QWidget()
        empty_layout = QVBoxLayout(self.empty_state)
        empty_layout.setAlignment(Qt.AlignmentFlag.AlignCenter)
        empty_title = QLabel(EMPTY_TITLE)
        empty_title.setFont(QFont("", 14, QFont.Weight.Medium))
        empty_title.setAlignment(Qt.AlignmentFlag.AlignCenter)
        empty_layout.addWidget(empty_title)
        empty_hint = QLabel(EMPTY_HINT)
        empty_hint.setStyleSheet(f"color: {theme.TEXT_DIM};")
        empty_hint.setAlignment(Qt.AlignmentFlag.AlignCenter)
        empty_layout.addWidget(empty_hint)
        content_layout.addWidget(self.empty_state)

        main_layout.addWidget(content, 1)

    @pyqtSlot(object)
    def _on_sync_state(self, state: SyncState):
        self.view_model.update(state)

    def _render(self, page: PageModel):
        self.count_label.setText(page.count_label)

        self.banner.setVisible(page.error is not None)
        self.banner_message.setText(page.error or "")

        self.spinner.setVisible(page.show_spinner)
        self.scroll.setVisible(page.show_grid)
        self.empty_state.setVisible(page.show_empty_state)

        records = tuple(self.view_model.filtered()) if page.cards else ()
        if page.cards != self._shown_views or records != self._shown_records:
            self._load_cards(page.cards, records)

        self._sync_dialog(page)

    def _load_cards(self, views, records):
        while self.apps_layout.count():
            item = self.apps_layout.takeAt(0)
            if item.widget():
                item.widget().deleteLater()

        self._shown_views = tuple(views)
        self._shown_records = records
        self._cards = []

        cols = self.config.grid_columns
        for i, view in enumerate(views):
            card = AppCard(
                view,
                on_select=lambda index=i: self._on_card_selected(index),
                timeout=self.config.image_timeout,
            )
            self._cards.append(card)
            self.apps_layout.addWidget(card, i // cols, i % cols)

    def _on_card_selected(self, index: int):
        if 0 <= index < len(self._shown_records):
            self.view_model.select(self._shown_records[index])

    def _sync_dialog(self, page: PageModel):
        if page.detail is None:
            if self._dialog is not None:
                dialog, self._dialog = self._dialog, None
                dialog.close()
            return

        if self._dialog is not None and self._dialog.view == page.detail:
            return
        if self._dialog is not None:
            dialog, self._dialog = self._dialog, None
            dialog.close()

        self._dialog = AppDetailsDialog(page.detail, self, self.config.image_timeout)
        self._dialog.finished.connect(self._on_dialog_finished)
        self._dialog.open()

    @pyqtSlot(int)
    def _on_dialog_finished(self, _result: int):
        if self._dialog is not None and self._dialog is self.sender():
            self._dialog = None
            self.view_model.dismiss()

    def closeEvent(self, event):
        self._unsubscribe()
        self.sync.stop()
        super().closeEvent(event)


def main(config: Optional[StoreConfig] = None) -> int:
    """Entry point for the Qt storefront."""
    config = config or StoreConfig.load()
    setup_logging(config.log_level, config.log_file, config.json_logs)

    app = QApplication(sys.argv)
    app.setApplicationName("APK Store")
    app.aboutToQuit.connect(cleanup_all)
    app.aboutToQuit.connect(ImageLoader.wait_all)

    sync = CatalogSync.from_config(config)
    register_cleanup(sync.stop)

    window = StoreWindow(sync, config)
    window.show()
    sync.start()

    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
