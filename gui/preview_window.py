from dataclasses import replace

from PyQt5.QtWidgets import (QDialog, QVBoxLayout, QHBoxLayout, QListWidget,
                             QListWidgetItem, QTextEdit, QLabel, QPushButton,
                             QSplitter, QFrame, QMessageBox, QLineEdit)
from PyQt5.QtCore import Qt

from examformat.classifier import OPTION_START_RULE
from examformat.models import OPTION_LABELS, Option, Question, question_type_for


def parse_option_lines(text: str) -> list[Option]:
    """Read back the 'A. text' lines typed in the option editor."""
    options: list[Option] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        matched = OPTION_START_RULE.match(line)
        if matched and all(option.label != matched.label for option in options):
            options.append(Option(label=matched.label, text=matched.text))
        elif options:
            last = options[-1]
            options[-1] = replace(last, text=f"{last.text} {line}".strip())
        else:
            raise ValueError(f"Baris opsi harus diawali huruf A-E: {line}")
    return options


class PreviewWindow(QDialog):
    def __init__(self, questions: list[Question], parent=None):
        super().__init__(parent)
        self.questions = list(questions)
        self.current_index = -1

        self.setWindowTitle("Koreksi Hasil Ekstraksi")
        self.resize(1000, 700)
        self.initUI()
        self.bindEvents()
        self.loadQuestions()

    def initUI(self):
        main_layout = QVBoxLayout(self)

        header_label = QLabel("Pilih soal di daftar kiri untuk memeriksa dan memperbaiki isinya.")
        header_label.setStyleSheet("font-weight: bold; color: #333; margin-bottom: 10px;")
        main_layout.addWidget(header_label)

        splitter = QSplitter(Qt.Horizontal)

        self.list_widget = QListWidget()
        self.list_widget.setObjectName("QuestionList")
        splitter.addWidget(self.list_widget)

        detail_container = QFrame()
        detail_layout = QVBoxLayout(detail_container)

        detail_layout.addWidget(QLabel("Teks soal:"))
        self.question_edit = QTextEdit()
        self.question_edit.setAcceptRichText(False)
        detail_layout.addWidget(self.question_edit)

        detail_layout.addWidget(QLabel("Opsi jawaban (satu per baris, kosongkan untuk soal uraian):"))
        self.options_edit = QTextEdit()
        self.options_edit.setAcceptRichText(False)
        detail_layout.addWidget(self.options_edit)

        detail_layout.addWidget(QLabel("Kunci jawaban:"))
        self.answer_edit = QLineEdit()
        self.answer_edit.setMaxLength(1)
        detail_layout.addWidget(self.answer_edit)

        splitter.addWidget(detail_container)
        splitter.setStretchFactor(1, 1)

        main_layout.addWidget(splitter)

        btn_layout = QHBoxLayout()
        self.save_btn = QPushButton("Simpan Perubahan")
        self.save_btn.setProperty("class", "success")

        self.apply_btn = QPushButton("Terapkan & Tutup")
        self.apply_btn.setProperty("class", "primary")

        self.close_btn = QPushButton("Tutup")
        self.close_btn.setProperty("class", "danger")

        btn_layout.addStretch()
        btn_layout.addWidget(self.save_btn)
        btn_layout.addWidget(self.apply_btn)
        btn_layout.addWidget(self.close_btn)

        main_layout.addLayout(btn_layout)

    def bindEvents(self):
        self.list_widget.currentRowChanged.connect(self.onQuestionSelected)
        self.save_btn.clicked.connect(lambda: self.saveCurrentQuestion())
        self.apply_btn.clicked.connect(self.applyAndClose)
        self.close_btn.clicked.connect(self.reject)

    def loadQuestions(self):
        self.list_widget.clear()
        for question in self.questions:
            kind = "PG" if question.is_multiple_choice else "Uraian"
            preview_line = question.text.splitlines()[0] if question.text else "(tanpa teks)"
            self.list_widget.addItem(QListWidgetItem(f"[{kind}] {question.id:02d}. {preview_line}"))

        if self.questions:
            self.list_widget.setCurrentRow(0)

    def onQuestionSelected(self, index: int):
        self.current_index = index
        if index < 0 or index >= len(self.questions):
            self.question_edit.clear()
            self.options_edit.clear()
            self.answer_edit.clear()
            return

        question = self.questions[index]
        self.question_edit.setPlainText(question.text)
        self.options_edit.setPlainText("\n".join(f"{o.label}. {o.text}" for o in question.options))
        self.answer_edit.setText(question.answer_key or "")

    def saveCurrentQuestion(self, show_message: bool = True) -> bool:
        index = self.current_index
        if index < 0 or index >= len(self.questions):
            return False

        text = self.question_edit.toPlainText().strip()
        if not text:
            QMessageBox.warning(self, "Gagal menyimpan", "Teks soal tidak boleh kosong.")
            self.question_edit.setFocus()
            return False

        try:
            options = parse_option_lines(self.options_edit.toPlainText())
        except ValueError as exc:
            QMessageBox.warning(self, "Gagal menyimpan", str(exc))
            self.options_edit.setFocus()
            return False

        answer = self.answer_edit.text().strip().upper() or None
        if answer is not None and (answer not in OPTION_LABELS or not options):
            QMessageBox.warning(self, "Gagal menyimpan", "Kunci jawaban harus salah satu label opsi (A-E).")
            self.answer_edit.setFocus()
            return False

        self.questions[index] = replace(
            self.questions[index],
            text=text,
            options=tuple(options),
            type=question_type_for(options),
            answer_key=answer,
        )

        self.loadQuestions()
        self.list_widget.setCurrentRow(index)
        if show_message:
            QMessageBox.information(self, "Tersimpan", "Perubahan soal ini sudah disimpan.")
        return True

    def applyAndClose(self):
        if self.saveCurrentQuestion(show_message=False):
            self.accept()
