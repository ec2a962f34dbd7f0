from PyQt5.QtWidgets import QGraphicsDropShadowEffect
from PyQt5.QtGui import QColor

def apply_shadow(widget, blur=15, offset=(0, 2)):
    shadow = QGraphicsDropShadowEffect()
    shadow.setBlurRadius(blur)
    shadow.setXOffset(offset[0])
    shadow.setYOffset(offset[1])
    shadow.setColor(QColor(0, 0, 0, 40))
    widget.setGraphicsEffect(shadow)

APP_STYLE = """
    QMainWindow, QDialog {
        background-color: #f1f5f9;
    }

    #MainTitle {
        font-family: 'Georgia', 'Times New Roman';
        font-size: 24px;
        font-weight: 800;
        color: #1e3a8a;
    }

    #SubTitle {
        font-family: 'Segoe UI';
        font-size: 13px;
        color: #64748b;
        margin-bottom: 6px;
    }

    #ProvenanceBadge {
        padding: 4px 12px;
        border-radius: 10px;
        background-color: #dbeafe;
        color: #1e3a8a;
        font-size: 12px;
    }

    #ProvenanceBadge[fallback="true"] {
        background-color: #ffedd5;
        color: #9a3412;
    }

    #DropArea {
        background-color: #ffffff;
        border: 2px dashed #93c5fd;
        border-radius: 14px;
    }

    #DropArea:hover {
        background-color: #eff6ff;
        border: 2px dashed #2563eb;
    }

    #DropArea QLabel {
        font-size: 15px;
        color: #60a5fa;
        font-weight: bold;
    }

    #FileInfo {
        font-size: 12px;
        color: #475569;
    }

    #StatusFrame {
        background-color: #ffffff;
        border: 1px solid #e2e8f0;
        border-radius: 8px;
    }

    #PreviewPage {
        background-color: #ffffff;
        border: 1px solid #cbd5e1;
        padding: 24px;
    }

    QPushButton {
        padding: 10px 22px;
        font-size: 14px;
        font-weight: bold;
        border-radius: 8px;
        background-color: #e2e8f0;
        color: #334155;
        border: none;
    }

    QPushButton:hover {
        background-color: #cbd5e1;
    }

    QPushButton:pressed {
        background-color: #94a3b8;
    }

    #PrimaryBtn {
        background-color: #1e40af;
        color: #ffffff;
    }

    #PrimaryBtn:hover {
        background-color: #1e3a8a;
    }

    #PrimaryBtn:disabled {
        background-color: #bfdbfe;
        color: #ffffff;
    }

    QProgressBar {
        border: none;
        border-radius: 5px;
        background-color: #e2e8f0;
        height: 8px;
        text-align: center;
    }

    QProgressBar::chunk {
        background-color: #2563eb;
        border-radius: 5px;
    }

    QGroupBox {
        font-weight: bold;
        border: 1px solid #e2e8f0;
        border-radius: 8px;
        margin-top: 1.5em;
        padding-top: 10px;
    }

    QGroupBox::title {
        subcontrol-origin: margin;
        left: 10px;
        padding: 0 3px 0 3px;
        color: #1e40af;
    }
"""
