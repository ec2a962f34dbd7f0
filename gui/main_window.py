import os
import threading
from pathlib import Path
from PyQt5.QtWidgets import (QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
                              QLabel, QPushButton, QFileDialog, QProgressBar,
                              QFrame, QAction, QMessageBox, QApplication, QTabWidget,
                              QPlainTextEdit, QLineEdit, QFormLayout, QTextBrowser)
from PyQt5.QtCore import Qt, pyqtSignal, QThread, QUrl
from PyQt5.QtGui import QIcon, QDesktopServices

from examformat.config_manager import ConfigManager
from examformat.debug_log import append_log, log_swallowed_exception
from examformat.error_messages import (build_export_error_message, build_extraction_status_message,
                                       build_input_error_message, provenance_label)
from examformat.exceptions import ExtractionCancelled, ProcessingError
from examformat.layout import Typography
from examformat.models import ExamData, ExtractionResult, ExtractionSource
from examformat.preview import render_preview_html
from examformat.service import ExamFormatService

from .preview_window import PreviewWindow
from .settings_window import SettingsWindow
from .styles import APP_STYLE, apply_shadow

HEADER_FIELDS = (
    ("exam_type", "Jenis Ujian"),
    ("academic_year", "Tahun Pelajaran"),
    ("subject", "Mata Pelajaran"),
    ("grade", "Kelas/Semester"),
    ("time_allocated", "Waktu"),
)


class DropArea(QFrame):
    fileDropped = pyqtSignal(str)

    def __init__(self):
        super().__init__()
        self.setAcceptDrops(True)
        self.setFrameStyle(QFrame.StyledPanel | QFrame.Sunken)
        self.setObjectName("DropArea")

        layout = QVBoxLayout()
        self.label = QLabel("Tarik file .txt ke sini\natau klik untuk memilih file")
        self.label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.label)
        self.setLayout(layout)

        self.setMinimumHeight(90)
        apply_shadow(self)

    def dragEnterEvent(self, event):
        if event.mimeData().hasUrls():
            event.accept()
            self.setStyleSheet("background-color: #e3f2fd; border: 2px dashed #2196f3;")
        else:
            event.ignore()

    def dragLeaveEvent(self, event):
        self.setStyleSheet("")

    def dropEvent(self, event):
        self.setStyleSheet("")
        files = [u.toLocalFile() for u in event.mimeData().urls()]
        if files:
            self.fileDropped.emit(files[0])

    def mousePressEvent(self, event):
        self.fileDropped.emit("SELECT_FILE")


class ExtractionWorker(QThread):
    succeeded = pyqtSignal(object)
    failed = pyqtSignal(str)
    cancelled = pyqtSignal()

    def __init__(self, service: ExamFormatService, raw_text: str):
        super().__init__()
        self.service = service
        self.raw_text = raw_text
        self._cancel_event = threading.Event()

    def cancel(self) -> None:
        self._cancel_event.set()
        self.requestInterruption()

    def run(self):
        try:
            result = self.service.extract(
                self.raw_text,
                cancel_event=self._cancel_event,
                propagate_cancel=True,
            )
        except ExtractionCancelled:
            self.cancelled.emit()
            return
        except Exception as exc:
            log_swallowed_exception("extraction worker crashed", exc)
            self.failed.emit(f"{type(exc).__name__}: {exc}")
            return
        self.succeeded.emit(result)


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("ExamFormat - Perapi Naskah Soal")
        icon_path = os.path.join("assets", "icon.ico")
        if os.path.isfile(icon_path):
            self.setWindowIcon(QIcon(icon_path))
        self.resize(1100, 780)

        self.config_manager = ConfigManager()
        self.service = ExamFormatService(self.config_manager)
        self.exam_data = ExamData(header=self.service.default_header())
        self.last_result: ExtractionResult | None = None
        self.last_output_dir = ""
        self._extract_worker: ExtractionWorker | None = None

        self.initUI()
        self.applyStyle()
        self.loadHeaderFields()
        self.refreshPreview()

    def initUI(self):
        menu_bar = self.menuBar()
        self.settings_action = QAction("Pengaturan", self)
        self.settings_action.triggered.connect(self.showSettings)
        help_action = QAction("Bantuan", self)
        help_action.triggered.connect(self.showHelp)
        menu_bar.addAction(self.settings_action)
        menu_bar.addAction(help_action)

        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        main_layout = QVBoxLayout(central_widget)
        main_layout.setContentsMargins(24, 18, 24, 18)
        main_layout.setSpacing(12)

        title_row = QHBoxLayout()
        title_label = QLabel("ExamFormat AI")
        title_label.setObjectName("MainTitle")
        title_row.addWidget(title_label)
        title_row.addStretch()
        self.provenance_label = QLabel("")
        self.provenance_label.setObjectName("ProvenanceBadge")
        title_row.addWidget(self.provenance_label)
        main_layout.addLayout(title_row)

        subtitle_label = QLabel("Rapikan teks soal mentah menjadi naskah ujian standar.")
        subtitle_label.setObjectName("SubTitle")
        main_layout.addWidget(subtitle_label)

        self.tabs = QTabWidget()
        self.tabs.addTab(self._build_input_tab(), "1. Input Soal")
        self.tabs.addTab(self._build_header_tab(), "2. Kop & Info")
        self.tabs.addTab(self._build_preview_tab(), "3. Pratinjau")
        main_layout.addWidget(self.tabs, 1)

        self.status_frame = QFrame()
        self.status_frame.setObjectName("StatusFrame")
        status_layout = QVBoxLayout(self.status_frame)
        self.status_label = QLabel("Status: menunggu input")
        self.status_label.setWordWrap(True)
        status_layout.addWidget(self.status_label)

        self.progress_bar = QProgressBar()
        self.progress_bar.setVisible(False)
        status_layout.addWidget(self.progress_bar)
        main_layout.addWidget(self.status_frame)

        btn_layout = QHBoxLayout()
        self.review_btn = QPushButton("Koreksi Soal")
        self.review_btn.setEnabled(False)
        self.review_btn.clicked.connect(self.showReview)
        self.export_btn = QPushButton("Download Word")
        self.export_btn.setObjectName("PrimaryBtn")
        self.export_btn.setEnabled(False)
        self.export_btn.clicked.connect(self.exportDocument)
        self.open_output_btn = QPushButton("Buka Folder Hasil")
        self.open_output_btn.setEnabled(False)
        self.open_output_btn.clicked.connect(self.openOutputFolder)

        btn_layout.addWidget(self.review_btn)
        btn_layout.addWidget(self.export_btn)
        btn_layout.addWidget(self.open_output_btn)
        main_layout.addLayout(btn_layout)
        self.updateProvenanceBadge()

    def _build_input_tab(self) -> QWidget:
        tab = QWidget()
        layout = QVBoxLayout(tab)

        self.drop_area = DropArea()
        self.drop_area.fileDropped.connect(self.handleFileSelect)
        layout.addWidget(self.drop_area)

        self.file_info_label = QLabel("Belum ada file dipilih")
        self.file_info_label.setObjectName("FileInfo")
        layout.addWidget(self.file_info_label)

        self.raw_text_edit = QPlainTextEdit()
        self.raw_text_edit.setPlaceholderText(
            "Paste soal di sini...\n\n"
            "Contoh:\n"
            "1. Ibu kota Indonesia adalah\n"
            "a. Jakarta b. Bandung c. Surabaya d. Medan\n"
            "2. Jelaskan pengertian fotosintesis!"
        )
        layout.addWidget(self.raw_text_edit, 1)

        row = QHBoxLayout()
        self.process_btn = QPushButton("Rapikan Soal")
        self.process_btn.setObjectName("PrimaryBtn")
        self.process_btn.clicked.connect(self.startExtraction)
        self.cancel_btn = QPushButton("Batal")
        self.cancel_btn.setEnabled(False)
        self.cancel_btn.clicked.connect(self.cancelExtraction)
        row.addStretch()
        row.addWidget(self.cancel_btn)
        row.addWidget(self.process_btn)
        layout.addLayout(row)
        return tab

    def _build_header_tab(self) -> QWidget:
        tab = QWidget()
        form = QFormLayout(tab)
        self.school_name_edit = QPlainTextEdit()
        self.school_name_edit.setMaximumHeight(90)
        self.school_name_edit.textChanged.connect(self.onHeaderChanged)
        form.addRow("Nama Sekolah / Instansi", self.school_name_edit)

        self.header_edits: dict[str, QLineEdit] = {}
        for key, label in HEADER_FIELDS:
            edit = QLineEdit()
            edit.textChanged.connect(self.onHeaderChanged)
            self.header_edits[key] = edit
            form.addRow(label, edit)
        return tab

    def _build_preview_tab(self) -> QWidget:
        tab = QWidget()
        layout = QVBoxLayout(tab)
        self.preview_browser = QTextBrowser()
        self.preview_browser.setObjectName("PreviewPage")
        layout.addWidget(self.preview_browser)
        return tab

    def _is_busy(self) -> bool:
        return bool(self._extract_worker and self._extract_worker.isRunning())

    def loadHeaderFields(self):
        header = self.exam_data.header
        self.school_name_edit.blockSignals(True)
        self.school_name_edit.setPlainText(header.school_name)
        self.school_name_edit.blockSignals(False)
        for key, edit in self.header_edits.items():
            edit.blockSignals(True)
            edit.setText(getattr(header, key))
            edit.blockSignals(False)

    def onHeaderChanged(self):
        header = self.exam_data.header
        header.school_name = self.school_name_edit.toPlainText()
        for key, edit in self.header_edits.items():
            setattr(header, key, edit.text())
        self.refreshPreview()

    def refreshPreview(self):
        typography = Typography.from_config(self.config_manager.all())
        self.preview_browser.setHtml(render_preview_html(self.exam_data, typography))

    def updateProvenanceBadge(self):
        offline = self.service.is_offline()
        source = self.last_result.source if self.last_result else ExtractionSource.REMOTE
        self.provenance_label.setText(provenance_label(source, offline))
        used_fallback = bool(self.last_result and self.last_result.source is ExtractionSource.LOCAL)
        self.provenance_label.setProperty("fallback", offline or used_fallback)
        self.provenance_label.style().unpolish(self.provenance_label)
        self.provenance_label.style().polish(self.provenance_label)

    def handleFileSelect(self, file_path):
        if self._is_busy():
            QMessageBox.information(self, "Info", "Proses sedang berjalan. Tunggu hingga selesai.")
            return

        if file_path == "SELECT_FILE":
            file_path, _ = QFileDialog.getOpenFileName(
                self,
                "Pilih File Soal",
                "",
                "Text Files (*.txt);;All Files (*)",
            )
        if not file_path:
            return

        try:
            raw_text = self.service.load_text_file(file_path)
        except ProcessingError as exc:
            QMessageBox.warning(self, "Gagal membuka file", build_input_error_message(str(exc)))
            return
        self.raw_text_edit.setPlainText(raw_text)
        self.file_info_label.setText(f"Dipilih: {os.path.basename(file_path)}")

    def startExtraction(self):
        raw_text = self.raw_text_edit.toPlainText()
        if not raw_text.strip():
            return
        if self._is_busy():
            QMessageBox.information(self, "Info", "Proses sedang berjalan.")
            return

        self.progress_bar.setVisible(True)
        self.progress_bar.setRange(0, 0)
        self.status_label.setText("Sedang menganalisis struktur soal...")
        QApplication.processEvents()
        self.process_btn.setEnabled(False)
        self.cancel_btn.setEnabled(True)
        self.review_btn.setEnabled(False)
        self.export_btn.setEnabled(False)
        self.settings_action.setEnabled(False)

        self._extract_worker = ExtractionWorker(self.service, raw_text)
        self._extract_worker.succeeded.connect(self._on_extraction_succeeded)
        self._extract_worker.failed.connect(self._on_extraction_failed)
        self._extract_worker.cancelled.connect(self._on_extraction_cancelled)
        self._extract_worker.finished.connect(self._on_extraction_finished)
        append_log(f"ui start extraction | chars={len(raw_text)}")
        self._extract_worker.start()

    def cancelExtraction(self):
        if not self._is_busy():
            return
        self.status_label.setText("Membatalkan...")
        self._extract_worker.cancel()

    def _on_extraction_succeeded(self, result: ExtractionResult):
        self.last_result = result
        self.exam_data.questions = list(result.questions)
        self.status_label.setText(build_extraction_status_message(result, self.service.is_offline()))
        self.updateProvenanceBadge()
        self.refreshPreview()
        self.tabs.setCurrentIndex(2)

    def _on_extraction_failed(self, error_message: str):
        self.status_label.setText(f"Error\n{error_message or 'Terjadi kesalahan.'}")

    def _on_extraction_cancelled(self):
        self.status_label.setText("Proses dibatalkan. Soal sebelumnya tidak diubah.")

    def _on_extraction_finished(self):
        self.progress_bar.setRange(0, 100)
        self.progress_bar.setValue(0)
        self.progress_bar.setVisible(False)
        self.process_btn.setEnabled(True)
        self.cancel_btn.setEnabled(False)
        self.settings_action.setEnabled(True)
        has_questions = bool(self.exam_data.questions)
        self.review_btn.setEnabled(has_questions)
        self.export_btn.setEnabled(has_questions)
        self._extract_worker = None

    def showReview(self):
        if not self.exam_data.questions:
            QMessageBox.information(self, "Info", "Rapikan soal terlebih dahulu.")
            return
        review = PreviewWindow(self.exam_data.questions, self)
        if review.exec_():
            self.exam_data.questions = review.questions
            self.refreshPreview()
            self.status_label.setText(f"Perubahan disimpan: {len(self.exam_data.questions)} soal")

    def exportDocument(self):
        if not self.exam_data.questions:
            QMessageBox.information(self, "Info", "Belum ada soal untuk diekspor.")
            return
        try:
            path = self.service.export(self.exam_data)
        except ProcessingError as exc:
            self.status_label.setText("Gagal membuat file Word.")
            QMessageBox.warning(self, "Ekspor gagal", build_export_error_message(str(exc)))
            return
        self.last_output_dir = str(path.parent)
        self.open_output_btn.setEnabled(True)
        self.status_label.setText(f"Dokumen tersimpan: {path}")
        QMessageBox.information(self, "Ekspor selesai", f"Dokumen Word berhasil dibuat:\n\n{path}")

    def showSettings(self):
        if self._is_busy():
            QMessageBox.information(self, "Info", "Pengaturan tidak dapat diubah saat proses berjalan.")
            return
        settings = SettingsWindow(self.config_manager, self)
        if settings.exec_():
            self.service.reload_config()
            self.updateProvenanceBadge()
            self.refreshPreview()
            QMessageBox.information(self, "Pengaturan", "Pengaturan berhasil disimpan.")

    def showHelp(self):
        QMessageBox.information(
            self,
            "Bantuan",
            "1) Paste teks soal atau pilih file .txt.\n"
            "2) Klik 'Rapikan Soal'. Tanpa API key, parser lokal yang dipakai.\n"
            "3) Lengkapi kop dan info ujian, lalu periksa pratinjau.\n"
            "4) Klik 'Download Word' untuk menyimpan dokumen.\n\n"
            "Setiap soal harus diawali nomor seperti '1.' atau '2)'.\n"
            "Opsi jawaban ditulis 'A.' sampai 'E.' per baris atau menyamping.",
        )

    def openOutputFolder(self):
        output_dir = (self.last_output_dir or "").strip()
        if not output_dir or not Path(output_dir).exists():
            QMessageBox.information(self, "Info", "Buat dokumen terlebih dahulu.")
            return
        if not QDesktopServices.openUrl(QUrl.fromLocalFile(output_dir)):
            QMessageBox.warning(self, "Gagal membuka folder", f"Folder hasil tidak dapat dibuka.\n{output_dir}")

    def closeEvent(self, event):
        if self._is_busy():
            self._extract_worker.cancel()
            self._extract_worker.wait(2000)
        super().closeEvent(event)

    def applyStyle(self):
        self.setStyleSheet(APP_STYLE)
