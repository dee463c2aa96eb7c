import sys
import os
import logging
from pathlib import Path
from PySide6.QtGui import QGuiApplication
from PySide6.QtQml import QQmlApplicationEngine
from plateconfig import ConfigurationError, DesktopConfiguration
from platecore.errors import PlateConsoleError
from desktop_ui.coordinator import PlateCoordinator

logger = logging.getLogger(__name__)


def main() -> int:
    # Set Qt Quick Controls style to Basic to allow background customization
    os.environ["QT_QUICK_CONTROLS_STYLE"] = "Basic"

    try:
        config = DesktopConfiguration.from_env()
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        return 1
    logging.getLogger().setLevel(config.logging_level())

    app = QGuiApplication(sys.argv)

    try:
        coordinator = PlateCoordinator(config)
    except PlateConsoleError as e:
        logger.error("Failed to open local data: %s", e)
        return 1

    engine = QQmlApplicationEngine()
    engine.rootContext().setContextProperty("plateModel", coordinator.plate_model)
    engine.rootContext().setContextProperty("cellModel", coordinator.cell_model)
    engine.rootContext().setContextProperty("logModel", coordinator.log_model)
    engine.rootContext().setContextProperty("coordinator", coordinator)

    qml_file = Path(__file__).parent / "qml" / "MainWindow.qml"
    engine.load(qml_file)

    if not engine.rootObjects():
        logger.error("Failed to load QML")
        coordinator.cleanup()
        return 1

    try:
        return app.exec()
    finally:
        coordinator.cleanup()
