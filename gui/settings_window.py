import json

from PyQt5.QtWidgets import (QDialog, QVBoxLayout, QHBoxLayout, QLabel,
                             QLineEdit, QPushButton, QFormLayout, QGroupBox,
                             QComboBox, QDoubleSpinBox, QSpinBox, QTabWidget,
                             QWidget, QFileDialog, QMessageBox, QCheckBox)

from examformat.config_manager import ConfigManager
from examformat.models import Difficulty
from examformat.remote_client import DEFAULT_MODEL


class SettingsWindow(QDialog):
    def __init__(self, config_manager: ConfigManager, parent=None):
        super().__init__(parent)
        self.config_manager = config_manager
        self.setWindowTitle("Pengaturan")
        self.resize(560, 620)
        self.initUI()
        self.loadConfig()

    def initUI(self):
        layout = QVBoxLayout(self)

        tabs = QTabWidget()

        # general
        general_tab = QWidget()
        gen_layout = QVBoxLayout(general_tab)

        path_group = QGroupBox("Folder Hasil")
        path_layout = QHBoxLayout()
        self.path_edit = QLineEdit()
        self.path_edit.setPlaceholderText("output")
        self.path_btn = QPushButton("Ubah")
        path_layout.addWidget(self.path_edit)
        path_layout.addWidget(self.path_btn)
        path_group.setLayout(path_layout)
        gen_layout.addWidget(path_group)

        font_group = QGroupBox("Font dan Tata Letak")
        font_form = QFormLayout()

        self.font_combo = QComboBox()
        self.font_combo.setEditable(True)
        self.font_combo.addItems(["Times New Roman", "Arial", "Calibri", "Bookman Old Style"])
        font_form.addRow("Font:", self.font_combo)

        self.body_size_spin = QDoubleSpinBox()
        self.body_size_spin.setRange(8.0, 20.0)
        self.body_size_spin.setSingleStep(0.5)
        self.body_size_spin.setValue(12.0)
        self.body_size_spin.setSuffix(" pt")
        font_form.addRow("Ukuran isi:", self.body_size_spin)

        self.header_size_spin = QDoubleSpinBox()
        self.header_size_spin.setRange(8.0, 28.0)
        self.header_size_spin.setSingleStep(0.5)
        self.header_size_spin.setValue(14.0)
        self.header_size_spin.setSuffix(" pt")
        font_form.addRow("Ukuran kop:", self.header_size_spin)

        self.line_spacing_spin = QDoubleSpinBox()
        self.line_spacing_spin.setRange(1.0, 3.0)
        self.line_spacing_spin.setSingleStep(0.05)
        self.line_spacing_spin.setValue(1.15)
        font_form.addRow("Spasi baris:", self.line_spacing_spin)

        self.margin_spin = QDoubleSpinBox()
        self.margin_spin.setRange(1.0, 5.0)
        self.margin_spin.setSingleStep(0.1)
        self.margin_spin.setValue(2.54)
        self.margin_spin.setSuffix(" cm")
        font_form.addRow("Margin:", self.margin_spin)

        font_group.setLayout(font_form)
        gen_layout.addWidget(font_group)
        gen_layout.addStretch()
        tabs.addTab(general_tab, "Umum")

        # remote extraction
        ai_tab = QWidget()
        ai_layout = QVBoxLayout(ai_tab)
        ai_group = QGroupBox("Gemini")
        ai_form = QFormLayout()

        self.model_combo = QComboBox()
        self.model_combo.setEditable(True)
        self.model_combo.addItems([DEFAULT_MODEL, "gemini-2.5-pro", "gemini-2.0-flash"])
        ai_form.addRow("Model:", self.model_combo)

        self.api_key_edit = QLineEdit()
        self.api_key_edit.setEchoMode(QLineEdit.Password)
        self.api_key_edit.setPlaceholderText("Kosongkan untuk memakai variabel lingkungan")
        ai_form.addRow("API key:", self.api_key_edit)

        self.env_names_label = QLabel("")
        self.env_names_label.setWordWrap(True)
        ai_form.addRow("Variabel lingkungan:", self.env_names_label)

        self.max_attempts_spin = QSpinBox()
        self.max_attempts_spin.setRange(1, 10)
        self.max_attempts_spin.setValue(3)
        ai_form.addRow("Maks. percobaan:", self.max_attempts_spin)

        self.backoff_spin = QSpinBox()
        self.backoff_spin.setRange(0, 60000)
        self.backoff_spin.setSingleStep(500)
        self.backoff_spin.setValue(2000)
        self.backoff_spin.setSuffix(" ms")
        ai_form.addRow("Jeda awal:", self.backoff_spin)

        self.timeout_spin = QSpinBox()
        self.timeout_spin.setRange(5000, 600000)
        self.timeout_spin.setSingleStep(5000)
        self.timeout_spin.setValue(60000)
        self.timeout_spin.setSuffix(" ms")
        ai_form.addRow("Batas waktu:", self.timeout_spin)

        self.renumber_check = QCheckBox("Nomori ulang ID dari AI (1..n)")
        ai_form.addRow(self.renumber_check)

        ai_group.setLayout(ai_form)
        ai_layout.addWidget(ai_group)

        parse_group = QGroupBox("Parser Lokal")
        parse_form = QFormLayout()
        self.difficulty_combo = QComboBox()
        self.difficulty_combo.addItem("(tidak diisi)", "")
        for member in Difficulty:
            self.difficulty_combo.addItem(member.value, member.value)
        parse_form.addRow("Tingkat kesulitan bawaan:", self.difficulty_combo)
        parse_group.setLayout(parse_form)
        ai_layout.addWidget(parse_group)

        ai_notice = QLabel(
            "※ Tanpa API key, soal dirapikan dengan parser lokal (Mode Offline).\n"
            "※ Jika limit AI tercapai, parser lokal dipakai otomatis."
        )
        ai_notice.setWordWrap(True)
        ai_layout.addWidget(ai_notice)
        ai_layout.addStretch()
        tabs.addTab(ai_tab, "AI")

        layout.addWidget(tabs)

        btn_layout = QHBoxLayout()
        self.export_btn = QPushButton("Ekspor Pengaturan")
        self.import_btn = QPushButton("Impor Pengaturan")
        self.save_btn = QPushButton("Simpan")
        self.save_btn.setStyleSheet("background-color: #1a237e; color: white;")
        self.cancel_btn = QPushButton("Batal")
        btn_layout.addWidget(self.export_btn)
        btn_layout.addWidget(self.import_btn)
        btn_layout.addStretch()
        btn_layout.addWidget(self.save_btn)
        btn_layout.addWidget(self.cancel_btn)
        layout.addLayout(btn_layout)

        self.path_btn.clicked.connect(self.pickOutputDirectory)
        self.export_btn.clicked.connect(self.exportConfig)
        self.import_btn.clicked.connect(self.importConfig)
        self.save_btn.clicked.connect(self.saveConfig)
        self.cancel_btn.clicked.connect(self.reject)

    def loadConfig(self):
        config = self.config_manager.all()

        self.path_edit.setText(config.get("paths", {}).get("output_directory", ""))

        export = config.get("export", {})
        font_family = str(export.get("font_family", "Times New Roman"))
        if self.font_combo.findText(font_family) == -1:
            self.font_combo.addItem(font_family)
        self.font_combo.setCurrentText(font_family)
        self.body_size_spin.setValue(float(export.get("body_font_size", 12)))
        self.header_size_spin.setValue(float(export.get("header_font_size", 14)))
        self.line_spacing_spin.setValue(float(export.get("line_spacing", 1.15)))
        self.margin_spin.setValue(float(export.get("margin_cm", 2.54)))

        remote = config.get("remote", {})
        model = str(remote.get("model") or DEFAULT_MODEL)
        if self.model_combo.findText(model) == -1:
            self.model_combo.addItem(model)
        self.model_combo.setCurrentText(model)
        self.api_key_edit.setText(str(remote.get("api_key", "")))
        env_names = remote.get("api_key_env") or []
        if isinstance(env_names, str):
            env_names = [env_names]
        self.env_names_label.setText(", ".join(env_names) or "(tidak ada)")
        self.max_attempts_spin.setValue(int(remote.get("max_attempts", 3)))
        self.backoff_spin.setValue(int(remote.get("initial_backoff_ms", 2000)))
        self.timeout_spin.setValue(int(remote.get("request_timeout_ms", 60000)))

        extraction = config.get("extraction", {})
        self.renumber_check.setChecked(bool(extraction.get("renumber_remote_ids", False)))

        difficulty = Difficulty.parse(config.get("parsing", {}).get("default_difficulty"))
        index = self.difficulty_combo.findData(difficulty.value if difficulty else "")
        self.difficulty_combo.setCurrentIndex(max(0, index))

    def pickOutputDirectory(self):
        selected = QFileDialog.getExistingDirectory(
            self,
            "Pilih Folder Hasil",
            self.path_edit.text() or "",
        )
        if selected:
            self.path_edit.setText(selected)

    def exportConfig(self):
        target_path, _ = QFileDialog.getSaveFileName(
            self,
            "Ekspor Pengaturan",
            "examformat_settings.json",
            "JSON Files (*.json);;All Files (*)",
        )
        if not target_path:
            return

        config = dict(self.config_manager.all())
        remote = dict(config.get("remote", {}))
        if remote.get("api_key"):
            remote["api_key"] = ""
            config["remote"] = remote
        try:
            with open(target_path, "w", encoding="utf-8") as file:
                json.dump(config, file, ensure_ascii=False, indent=2)
        except OSError as exc:
            QMessageBox.warning(self, "Ekspor gagal", f"File pengaturan gagal disimpan.\n{exc}")
            return
        QMessageBox.information(self, "Ekspor selesai", f"Pengaturan disimpan (tanpa API key).\n{target_path}")

    def importConfig(self):
        source_path, _ = QFileDialog.getOpenFileName(
            self,
            "Impor Pengaturan",
            "",
            "JSON Files (*.json);;All Files (*)",
        )
        if not source_path:
            return

        try:
            with open(source_path, "r", encoding="utf-8") as file:
                payload = json.load(file)
            if not isinstance(payload, dict):
                raise ValueError("Objek JSON utama harus berupa dictionary.")
            self.config_manager.update(payload)
        except (OSError, ValueError) as exc:
            QMessageBox.warning(self, "Impor gagal", f"File pengaturan tidak dapat dibaca.\n{exc}")
            return
        self.loadConfig()
        QMessageBox.information(self, "Impor selesai", "Pengaturan dimuat dan ditampilkan.")

    def saveConfig(self):
        partial = {
            "paths": {
                "output_directory": self.path_edit.text().strip(),
            },
            "export": {
                "font_family": self.font_combo.currentText().strip() or "Times New Roman",
                "body_font_size": self.body_size_spin.value(),
                "header_font_size": self.header_size_spin.value(),
                "line_spacing": self.line_spacing_spin.value(),
                "margin_cm": self.margin_spin.value(),
            },
            "remote": {
                "model": self.model_combo.currentText().strip() or DEFAULT_MODEL,
                "api_key": self.api_key_edit.text().strip(),
                "max_attempts": self.max_attempts_spin.value(),
                "initial_backoff_ms": self.backoff_spin.value(),
                "request_timeout_ms": self.timeout_spin.value(),
            },
            "extraction": {
                "renumber_remote_ids": self.renumber_check.isChecked(),
            },
            "parsing": {
                "default_difficulty": self.difficulty_combo.currentData() or None,
            },
        }
        self.config_manager.update(partial)
        self.accept()
