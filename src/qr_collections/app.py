"""PyQt5 user interface for QR Collections."""
from __future__ import annotations

from typing import Callable, List, Optional

from PIL import Image
from PyQt5.QtCore import QObject, QSize, QThread, Qt, pyqtSignal, pyqtSlot
from PyQt5.QtGui import QIcon, QImage, QPixmap
from PyQt5.QtWidgets import (
    QAbstractItemView,
    QApplication,
    QDialog,
    QDialogButtonBox,
    QFileDialog,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from .config import AppConfig, CameraConfig, StyleConfig
from .gallery import AuthorizationStatus, DirectoryPhotoLibrary, SaveReport, export_images, save_to_library
from .icon import create_icon
from .images import ImageStore
from .logging_config import setup_logging
from .models import Item
from .persistence import DirectoryBackend, PersistenceAdapter
from .qr import QRCodeManager
from .scanner import ScanIntake, camera_status_message
from .state import AppState
from .store import CollectionStore, GeneratedStore, ScanStore, Updatable
from .transfer import move_selected


def _to_pixmap(image: Image.Image) -> QPixmap:  # pragma: no cover - requires Qt
    rgba = image.convert("RGBA")
    data = rgba.tobytes("raw", "RGBA")
    qimage = QImage(data, rgba.width, rgba.height, QImage.Format_RGBA8888)
    return QPixmap.fromImage(qimage.copy())


class LoadWorker(QObject):  # pragma: no cover - requires Qt event loop
    """Read one collection off the UI thread."""

    finished = pyqtSignal(str, object)

    def __init__(self, adapter: PersistenceAdapter, key: str):
        super().__init__()
        self._adapter = adapter
        self._key = key

    def run(self) -> None:
        self.finished.emit(self._key, self._adapter.load(self._key))


class RenderWorker(QObject):  # pragma: no cover - requires Qt event loop
    """Render QR images for new items off the UI thread."""

    rendered = pyqtSignal(str, str, object)

    def __init__(self, qr: QRCodeManager):
        super().__init__()
        self._qr = qr

    @pyqtSlot(str, str, str)
    def render(self, key: str, item_id: str, text: str) -> None:
        self.rendered.emit(key, item_id, self._qr.render(text))


RenderRequest = Callable[[str, str, str], None]


class LibraryBridge(QObject):  # pragma: no cover - requires Qt event loop
    """Carry photo-library callbacks from worker threads to the UI thread."""

    report_ready = pyqtSignal(object)
    status_ready = pyqtSignal(str)


class CameraWorker(QObject):  # pragma: no cover - requires Qt event loop
    """Background worker that streams frames and decoded payloads."""

    frame_captured = pyqtSignal(object)
    decoded = pyqtSignal(str)
    status = pyqtSignal(object)
    finished = pyqtSignal()

    def __init__(self, config: AppConfig, camera_config: CameraConfig, qr: QRCodeManager):
        super().__init__()
        self._config = config
        self._camera_config = camera_config
        self._qr = qr
        self._running = False
        self._cv2 = None

    def stop(self) -> None:
        self._running = False

    def run(self) -> None:
        try:
            import cv2  # type: ignore
        except ImportError:
            self.status.emit(AuthorizationStatus.RESTRICTED)
            self.finished.emit()
            return

        self._cv2 = cv2
        self.status.emit(AuthorizationStatus.NOT_DETERMINED)

        capture = self._open_capture()
        if capture is None:
            self.status.emit(AuthorizationStatus.DENIED)
            self.finished.emit()
            return

        self._running = True
        frame_skip = max(1, self._config.camera_frame_skip)
        frame_counter = 0
        self.status.emit(AuthorizationStatus.AUTHORIZED)

        try:
            while self._running:
                success, frame = capture.read()
                if not success or frame is None:
                    break

                frame = self._resize_frame(frame)
                self.frame_captured.emit(frame)

                frame_counter += 1
                if frame_counter % frame_skip:
                    continue

                payload = self._qr.decode_frame(frame)
                if payload:
                    self.decoded.emit(payload)
        finally:
            self._running = False
            capture.release()
            self.finished.emit()

    def _open_capture(self):
        assert self._cv2 is not None
        config = self._camera_config

        default_backend = getattr(self._cv2, "CAP_ANY", 0)
        for backend in config.get_backends() or [default_backend]:
            for index in config.get_indices():
                try:
                    capture = self._cv2.VideoCapture(index, backend)
                except TypeError:
                    capture = self._cv2.VideoCapture(index)
                if not capture or not capture.isOpened():
                    if capture:
                        capture.release()
                    continue

                capture.set(self._cv2.CAP_PROP_FRAME_WIDTH, config.width)
                capture.set(self._cv2.CAP_PROP_FRAME_HEIGHT, config.height)
                return capture
        return None

    def _resize_frame(self, frame):
        assert self._cv2 is not None
        max_dim = max(frame.shape[:2])
        limit = self._config.max_frame_size
        if max_dim <= limit:
            return frame

        scale = limit / float(max_dim)
        new_size = (int(frame.shape[1] * scale), int(frame.shape[0] * scale))
        return self._cv2.resize(frame, new_size)


class EditItemDialog(QDialog):  # pragma: no cover - requires Qt event loop
    """Rename an item of any store that supports :class:`Updatable`."""

    def __init__(self, item: Item, store: Updatable, preview: Optional[Image.Image], parent=None):
        super().__init__(parent)
        self._item = item
        self._store = store
        self.setWindowTitle("Edit QR code")

        layout = QVBoxLayout(self)
        self._text_input = QLineEdit(item.text)
        layout.addWidget(self._text_input)

        if preview is not None:
            image_label = QLabel()
            image_label.setAlignment(Qt.AlignCenter)
            image_label.setPixmap(_to_pixmap(preview).scaled(220, 220, Qt.KeepAspectRatio))
            layout.addWidget(image_label)

        self._buttons = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel)
        self._buttons.accepted.connect(self._save)
        self._buttons.rejected.connect(self.reject)
        layout.addWidget(self._buttons)

        self._text_input.textChanged.connect(self._refresh_save_button)
        self._refresh_save_button()

    def _refresh_save_button(self) -> None:
        text = self._text_input.text()
        enabled = bool(text.strip()) and text != self._item.text
        self._buttons.button(QDialogButtonBox.Save).setEnabled(enabled)

    def _save(self) -> None:
        self._store.update(self._item.id, self._text_input.text())
        self.accept()


class CollectionPanel(QWidget):  # pragma: no cover - requires Qt event loop
    """List view over the visible items of one store."""

    status_message = pyqtSignal(str)

    def __init__(
        self,
        store: CollectionStore,
        images: ImageStore,
        library: DirectoryPhotoLibrary,
        state: AppState,
        style: StyleConfig,
    ):
        super().__init__()
        self._store = store
        self._images = images
        self._library = library
        self._state = state
        self._style = style
        self._rebuilding = False
        self._icons: dict = {}

        self._bridge = LibraryBridge()
        self._bridge.report_ready.connect(self._on_library_report)
        self._bridge.status_ready.connect(self._on_library_status)

        self._setup_ui()
        self._unsubscribe = store.subscribe(lambda _store: self._rebuild())
        self._rebuild()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)

        row = QHBoxLayout()
        self._select_all_btn = QPushButton("Select all")
        self._deselect_all_btn = QPushButton("Deselect all")
        self._copy_btn = QPushButton("Copy text")
        self._save_btn = QPushButton("Save to library")
        self._export_btn = QPushButton("Export selected…")
        self._delete_btn = QPushButton("Delete selected")
        self._delete_btn.setObjectName("DangerButton")
        for button in (
            self._select_all_btn,
            self._deselect_all_btn,
            self._copy_btn,
            self._save_btn,
            self._export_btn,
            self._delete_btn,
        ):
            row.addWidget(button)

        self._list = QListWidget()
        size = self._style.thumbnail_size
        self._list.setIconSize(QSize(size, size))
        self._list.setSelectionMode(QAbstractItemView.NoSelection)
        self._list.setUniformItemSizes(True)

        layout.addLayout(row)
        layout.addWidget(self._list)

        self._select_all_btn.clicked.connect(self._store.select_all)
        self._deselect_all_btn.clicked.connect(self._store.deselect_all)
        self._copy_btn.clicked.connect(self._copy_selected)
        self._save_btn.clicked.connect(self._save_selected)
        self._export_btn.clicked.connect(self._export_selected)
        self._delete_btn.clicked.connect(self._confirm_delete)
        self._list.itemChanged.connect(self._on_item_changed)
        self._list.itemDoubleClicked.connect(self._edit_item)
        self._list.verticalScrollBar().valueChanged.connect(self._on_scrolled)

    def _icon_for(self, item: Item) -> QIcon:
        key = item.image_path
        if key in self._icons:
            return self._icons[key]
        image = self._images.decode(item.image_path)
        icon = QIcon(_to_pixmap(image)) if image is not None else QIcon()
        self._icons[key] = icon
        return icon

    def _rebuild(self) -> None:
        self._rebuilding = True
        try:
            scroll = self._list.verticalScrollBar().value()
            self._list.clear()
            for item in self._store.items:
                entry = QListWidgetItem(self._icon_for(item), item.text)
                entry.setData(Qt.UserRole, item.id)
                entry.setFlags(entry.flags() | Qt.ItemIsUserCheckable)
                entry.setCheckState(Qt.Checked if item.is_selected else Qt.Unchecked)
                self._list.addItem(entry)
            self._list.verticalScrollBar().setValue(scroll)
        finally:
            self._rebuilding = False

        has_selection = self._store.has_selection
        for button in (self._copy_btn, self._save_btn, self._export_btn, self._delete_btn):
            button.setEnabled(has_selection)
        visible = bool(self._store.items)
        self._select_all_btn.setEnabled(visible)
        self._deselect_all_btn.setEnabled(visible)

    def _on_item_changed(self, entry: QListWidgetItem) -> None:
        if self._rebuilding:
            return
        self._store.set_selected(entry.data(Qt.UserRole), entry.checkState() == Qt.Checked)

    def _on_scrolled(self, value: int) -> None:
        if self._rebuilding:
            return
        if value >= self._list.verticalScrollBar().maximum():
            self._store.reveal_more()

    def _edit_item(self, entry: QListWidgetItem) -> None:
        item = self._store.get(entry.data(Qt.UserRole))
        if item is None:
            return
        dialog = EditItemDialog(item, self._store, self._images.decode(item.image_path), self)
        dialog.exec_()

    def _copy_selected(self) -> None:
        texts = [item.text for item in self._store.selected_items()]
        if texts:
            QApplication.clipboard().setText("\n".join(texts))
            self.status_message.emit(f"Copied {len(texts)} code(s)")

    def _confirm_delete(self) -> None:
        count = len(self._store.selected_items())
        if not count:
            return
        answer = QMessageBox.question(self, "Delete", f"Delete {count} selected QR code(s)?")
        if answer == QMessageBox.Yes:
            self._store.delete_selected()

    def _save_selected(self) -> None:
        if self._state.saving_to_library:
            return
        images = self._store.selected_images()
        if not images:
            self.status_message.emit("Nothing to save")
            return

        self._state.saving_to_library = True
        self._save_btn.setEnabled(False)
        started = save_to_library(
            self._library,
            images,
            self._bridge.report_ready.emit,
            self._bridge.status_ready.emit,
        )
        if not started:
            self._state.saving_to_library = False
            self._save_btn.setEnabled(True)

    def _export_selected(self) -> None:
        images = self._store.selected_images()
        if not images:
            self.status_message.emit("Nothing to export")
            return
        directory = QFileDialog.getExistingDirectory(self, "Export QR codes")
        if not directory:
            return
        report = export_images(images, directory)
        QMessageBox.information(self, "Export", report.message)

    def _on_library_report(self, report: SaveReport) -> None:
        self._state.saving_to_library = False
        self._store.deselect_all()
        QMessageBox.information(self, "Saving", report.message)

    def _on_library_status(self, message: str) -> None:
        self._state.saving_to_library = False
        self._save_btn.setEnabled(self._store.has_selection)
        self.status_message.emit(message)

    def shutdown(self) -> None:
        self._unsubscribe()


class GenerateTab(QWidget):  # pragma: no cover - requires Qt event loop
    def __init__(self, store: GeneratedStore, request_render: RenderRequest, panel: CollectionPanel):
        super().__init__()
        self._store = store
        self._request_render = request_render
        self._ready = False

        layout = QVBoxLayout(self)
        row = QHBoxLayout()
        self._input = QLineEdit()
        self._input.setPlaceholderText("Loading saved codes…")
        self._generate_btn = QPushButton("Generate")
        self._generate_btn.setObjectName("AccentButton")
        row.addWidget(self._input)
        row.addWidget(self._generate_btn)

        layout.addLayout(row)
        layout.addWidget(panel)

        self._input.returnPressed.connect(self._generate)
        self._generate_btn.clicked.connect(self._generate)
        self._input.textChanged.connect(lambda _text: self._refresh_generate_button())
        self.set_ready(False)

    def set_ready(self, ready: bool) -> None:
        """Enable input once the generated collection has loaded."""

        self._ready = ready
        self._input.setEnabled(ready)
        self._input.setPlaceholderText("Enter text or URL" if ready else "Loading saved codes…")
        self._refresh_generate_button()

    def _refresh_generate_button(self) -> None:
        self._generate_btn.setEnabled(self._ready and bool(self._input.text().strip()))

    def _generate(self) -> None:
        text = self._input.text().strip()
        if not self._ready or not text:
            return
        item = self._store.add(text)
        if item is None:
            return
        self._request_render(self._store.key, item.id, item.text)
        self._input.clear()


class ScanTab(QWidget):  # pragma: no cover - requires Qt event loop
    def __init__(
        self,
        config: AppConfig,
        camera_config: CameraConfig,
        state: AppState,
        qr: QRCodeManager,
        scan_store: ScanStore,
        generated_store: GeneratedStore,
        request_render: RenderRequest,
        panel: CollectionPanel,
    ):
        super().__init__()
        self._config = config
        self._camera_config = camera_config
        self._state = state
        self._qr = qr
        self._scan_store = scan_store
        self._generated_store = generated_store
        self._request_render = request_render
        self._intake = ScanIntake(scan_store)
        self._ready = False

        self._camera_thread: QThread | None = None
        self._camera_worker: CameraWorker | None = None
        self._cv2_module = None

        layout = QVBoxLayout(self)
        layout.addWidget(self._create_camera_group())

        row = QHBoxLayout()
        self._open_btn = QPushButton("Read from image…")
        self._move_btn = QPushButton("Move selected to generated")
        self._move_btn.setObjectName("AccentButton")
        row.addWidget(self._open_btn)
        row.addWidget(self._move_btn)
        layout.addLayout(row)
        layout.addWidget(panel)

        self._open_btn.clicked.connect(self._read_image_file)
        self._move_btn.clicked.connect(self._move_selected)
        self.set_ready(False)

    def set_ready(self, ready: bool) -> None:
        """Enable scanning and moving once both collections have loaded."""

        self._ready = ready
        self._open_btn.setEnabled(self._can_scan())
        self._move_btn.setEnabled(ready)
        if self._camera_thread is None:
            self._camera_start_btn.setEnabled(self._can_scan())

    def _can_scan(self) -> bool:
        return self._ready and self._state.camera_available

    def _create_camera_group(self) -> QWidget:
        try:
            import cv2  # type: ignore
            from pyzbar import pyzbar  # type: ignore  # noqa: F401
        except ImportError:
            cv2 = None

        self._state.camera_available = cv2 is not None
        self._cv2_module = cv2

        group = QGroupBox("Camera")
        layout = QVBoxLayout()

        self._camera_display = QLabel("Camera preview will appear here")
        self._camera_display.setObjectName("qrDisplayLabel")
        self._camera_display.setAlignment(Qt.AlignCenter)
        self._camera_display.setMinimumSize(320, 240)

        self._camera_status = QLabel("Camera idle")
        self._camera_status.setAlignment(Qt.AlignCenter)
        self._camera_status.setObjectName("SubtleLabel")

        button_row = QHBoxLayout()
        self._camera_start_btn = QPushButton("Start scanning")
        self._camera_stop_btn = QPushButton("Stop")
        self._camera_stop_btn.setEnabled(False)
        self._camera_start_btn.setEnabled(self._can_scan())
        if not self._state.camera_available:
            self._camera_status.setText(camera_status_message(AuthorizationStatus.RESTRICTED))

        self._camera_start_btn.clicked.connect(self._start_camera)
        self._camera_stop_btn.clicked.connect(self._stop_camera)

        button_row.addWidget(self._camera_start_btn)
        button_row.addWidget(self._camera_stop_btn)

        layout.addWidget(self._camera_display)
        layout.addLayout(button_row)
        layout.addWidget(self._camera_status)
        group.setLayout(layout)
        return group

    def _start_camera(self) -> None:
        if not self._can_scan() or self._camera_thread:
            return

        self._intake.reset()
        self._camera_start_btn.setEnabled(False)
        self._camera_stop_btn.setEnabled(True)

        worker = CameraWorker(self._config, self._camera_config, self._qr)
        thread = QThread()
        worker.moveToThread(thread)

        thread.started.connect(worker.run)
        worker.frame_captured.connect(self._on_camera_frame)
        worker.decoded.connect(self._on_camera_decoded)
        worker.status.connect(self._on_camera_status)
        worker.finished.connect(self._on_camera_finished)
        thread.finished.connect(thread.deleteLater)

        self._camera_thread = thread
        self._camera_worker = worker
        thread.start()

    def _stop_camera(self) -> None:
        if self._camera_worker:
            self._camera_worker.stop()
        if self._camera_thread and self._camera_thread.isRunning():
            self._camera_thread.quit()
            self._camera_thread.wait(1500)
        self._camera_thread = None
        self._camera_worker = None

        self._camera_display.clear()
        self._camera_display.setText("Camera preview will appear here")
        self._camera_start_btn.setEnabled(self._can_scan())
        self._camera_stop_btn.setEnabled(False)
        self._camera_status.setText("Camera stopped")

    def _on_camera_frame(self, frame) -> None:
        if self._cv2_module is None:
            return

        rgb = self._cv2_module.cvtColor(frame, self._cv2_module.COLOR_BGR2RGB)
        height, width, channel = rgb.shape
        image = QImage(rgb.data, width, height, channel * width, QImage.Format_RGB888)
        pixmap = QPixmap.fromImage(image.copy())
        target_size = self._camera_display.size()
        if target_size.width() and target_size.height():
            pixmap = pixmap.scaled(target_size, Qt.KeepAspectRatio, Qt.SmoothTransformation)
        self._camera_display.setPixmap(pixmap)

    def _on_camera_decoded(self, payload: str) -> None:
        item = self._intake.submit(payload)
        if item is not None:
            self._request_render(self._scan_store.key, item.id, item.text)
            self._camera_status.setText(f"Scanned: {item.text}")
            QApplication.beep()

    def _on_camera_status(self, status: AuthorizationStatus) -> None:
        self._state.camera_status = status
        self._camera_status.setText(camera_status_message(status))

    def _on_camera_finished(self) -> None:
        if self._camera_thread and self._camera_thread.isRunning():
            self._camera_thread.quit()
            self._camera_thread.wait(1500)
        self._camera_thread = None
        self._camera_worker = None
        self._camera_start_btn.setEnabled(self._can_scan())
        self._camera_stop_btn.setEnabled(False)

    def _read_image_file(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Read QR code", "", "Images (*.png *.jpg *.jpeg *.bmp)")
        if not path:
            return
        payload = self._qr.read_from_file(path)
        if payload is None:
            QMessageBox.warning(self, "Read QR code", "No QR code found in the image.")
            return
        self._intake.reset()
        item = self._intake.submit(payload)
        if item is None:
            self._camera_status.setText("That code is already in the list")
            return
        self._request_render(self._scan_store.key, item.id, item.text)

    def _move_selected(self) -> None:
        if not self._ready:
            return
        added = move_selected(self._scan_store, self._generated_store, self._qr.render)
        self._camera_status.setText(f"Moved {len(added)} code(s) to generated")

    def stop_camera(self) -> None:
        self._stop_camera()


class QRCollectionsApp(QMainWindow):  # pragma: no cover - requires Qt event loop
    render_requested = pyqtSignal(str, str, str)

    def __init__(self, config: Optional[AppConfig] = None) -> None:
        super().__init__()

        self._config = config or AppConfig()
        self._camera_config = CameraConfig()
        self._style = StyleConfig()
        self._state = AppState()

        self._qr = QRCodeManager(self._config)
        self._state.qr_available = self._qr.is_available()
        self._images = ImageStore(self._config.image_dir)
        self._adapter = PersistenceAdapter(DirectoryBackend(self._config.store_dir), self._images)
        self._library = DirectoryPhotoLibrary(self._config.library_dir, self._config.library_workers)

        self._generated = GeneratedStore(
            self._adapter, self._images, key=self._config.generated_key, batch_size=self._config.batch_size
        )
        self._scanned = ScanStore(
            self._adapter, self._images, key=self._config.scanned_key, batch_size=self._config.batch_size
        )

        self._load_threads: List[QThread] = []
        self._load_workers: List[LoadWorker] = []
        self._panels: List[CollectionPanel] = []

        self._render_thread = QThread()
        self._render_worker = RenderWorker(self._qr)
        self._render_worker.moveToThread(self._render_thread)
        self.render_requested.connect(self._render_worker.render)
        self._render_worker.rendered.connect(self._on_rendered)
        self._render_thread.start()

        self._setup_ui()
        self._start_loading(self._generated)
        self._start_loading(self._scanned)

    def _make_panel(self, store: CollectionStore) -> CollectionPanel:
        panel = CollectionPanel(store, self._images, self._library, self._state, self._style)
        panel.status_message.connect(self._show_status)
        self._panels.append(panel)
        return panel

    def _setup_ui(self) -> None:
        self.setWindowTitle(f"{self._config.app_name} v{self._config.app_version}")
        self.setGeometry(100, 100, 760, 820)
        self.setMinimumSize(600, 600)
        self.setWindowIcon(create_icon())
        self._apply_stylesheet()

        self._tabs = QTabWidget()
        self._generate_tab = GenerateTab(self._generated, self.render_requested.emit, self._make_panel(self._generated))
        self._scan_tab = ScanTab(
            self._config,
            self._camera_config,
            self._state,
            self._qr,
            self._scanned,
            self._generated,
            self.render_requested.emit,
            self._make_panel(self._scanned),
        )
        self._tabs.addTab(self._generate_tab, "Create")
        self._tabs.addTab(self._scan_tab, "Scan")
        self.setCentralWidget(self._tabs)

        if not self._state.qr_available:
            self._show_status("segno is not installed; QR codes cannot be generated")

        self.show()

    def _apply_stylesheet(self) -> None:
        style = self._style
        self.setStyleSheet(
            f"""
            QMainWindow {{ background: {style.bg_primary}; }}
            QWidget {{ color: {style.fg_primary}; font-family: {style.font_family}; font-size: {style.font_size}px; }}
            QTabBar::tab {{ background: {style.bg_secondary}; padding: 10px 18px; border: 1px solid {style.border}; border-bottom: none; }}
            QTabBar::tab:selected {{ background: {style.selection}; }}
            QGroupBox {{ font-weight: bold; border: 1px solid {style.border}; border-radius: 8px; margin-top: 1ex; padding: 12px; background: {style.bg_secondary}; }}
            QLineEdit {{ background: {style.bg_secondary}; border: 1px solid {style.border}; border-radius: 4px; padding: 8px; }}
            QLineEdit:focus {{ border: 1px solid {style.accent_primary}; }}
            QListWidget {{ background: {style.bg_secondary}; border: 1px solid {style.border}; border-radius: 4px; }}
            QPushButton {{ background: {style.bg_secondary}; border: 1px solid {style.border}; padding: 8px 12px; border-radius: 4px; }}
            QPushButton#AccentButton {{ background: {style.accent_primary}; color: white; border: none; font-weight: bold; }}
            QPushButton#DangerButton {{ color: {style.warning}; }}
            QPushButton:disabled {{ color: {style.fg_secondary}; }}
            #SubtleLabel {{ color: {style.fg_secondary}; }}
            #qrDisplayLabel {{ border: 2px dashed {style.border}; border-radius: 4px; }}
            """
        )

    def _start_loading(self, store: CollectionStore) -> None:
        thread = QThread()
        worker = LoadWorker(self._adapter, store.key)
        worker.moveToThread(thread)

        thread.started.connect(worker.run)
        worker.finished.connect(self._on_loaded)
        worker.finished.connect(thread.quit)
        thread.finished.connect(thread.deleteLater)

        self._load_threads.append(thread)
        self._load_workers.append(worker)
        thread.start()

    def _store_for(self, key: str) -> Optional[CollectionStore]:
        for store in (self._generated, self._scanned):
            if store.key == key:
                return store
        return None

    def _on_loaded(self, key: str, items: object) -> None:
        store = self._store_for(key)
        if store is not None:
            store.publish(items)  # type: ignore[arg-type]
        self._generate_tab.set_ready(self._generated.is_loaded)
        self._scan_tab.set_ready(self._generated.is_loaded and self._scanned.is_loaded)

    def _on_rendered(self, key: str, item_id: str, image: object) -> None:
        store = self._store_for(key)
        if store is None:
            return
        if image is None:
            self._show_status("The QR code could not be rendered")
            return
        store.attach_image(item_id, image)  # type: ignore[arg-type]

    def _show_status(self, message: str) -> None:
        self._state.status_message = message
        self.statusBar().showMessage(message, 5000)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self._scan_tab.stop_camera()
        for thread in self._load_threads:
            try:
                if thread.isRunning():
                    thread.quit()
                    thread.wait(2000)
            except RuntimeError:
                continue
        self._render_thread.quit()
        self._render_thread.wait(2000)
        for panel in self._panels:
            panel.shutdown()
        self._library.close()
        event.accept()


def run() -> int:  # pragma: no cover - requires Qt event loop
    config = AppConfig()
    config.data_dir.mkdir(parents=True, exist_ok=True)
    setup_logging(config.log_level, config.data_dir / "qr_collections.log")

    app = QApplication.instance() or QApplication([])
    app.setApplicationName("QR Collections")
    window = QRCollectionsApp(config)  # noqa: F841 - keeps the window alive
    return app.exec_()


__all__ = ["run", "QRCollectionsApp"]
