import sys
from PySide6.QtWidgets import QApplication
from trap_forge.ui.main_window import MainWindow

def main():
    app = QApplication(sys.argv)
    win = MainWindow()
    win.resize(1100, 760)
    win.show()
    sys.exit(app.exec())

if __name__ == "__main__":
    main()
