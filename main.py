import sys
from examformat.cli import main as cli_main


def _run_cli_if_requested(argv: list[str]) -> int | None:
    if len(argv) > 1 and argv[1].startswith("-"):
        return cli_main(argv)
    return None

def main():
    maybe_code = _run_cli_if_requested(sys.argv)
    if maybe_code is not None:
        sys.exit(maybe_code)

    from PyQt5.QtWidgets import QApplication
    from gui.main_window import MainWindow

    app = QApplication(sys.argv)
    window = MainWindow()
    window.show()
    sys.exit(app.exec_())

if __name__ == "__main__":
    main()
