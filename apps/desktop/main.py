import signal
import sys
from PySide6.QtWidgets import QApplication, QSystemTrayIcon

from packages.shared.paths import ensure_app_dirs, dns_settings_path
from packages.shared.store import ConfigStore
from packages.core.logging_ import setup_logging
from packages.core.dns.latency_probe import LatencyProbe
from packages.core.dns.manager import DnsManager
from packages.core.dns.resolver_port import SettingsFileResolverPort
from packages.core.monitor.session_monitor import SessionMonitor
from packages.core.notify.notifier import ToastNotifierWin10
from .ui.bridge import EventBridge
from .ui.tray import DnsTray
from .ui.window import MainWindow


def build_manager() -> DnsManager:
    store = ConfigStore()
    port = SettingsFileResolverPort(dns_settings_path())
    probe = LatencyProbe()
    monitor = SessionMonitor(store=store, port=port, probe=probe)
    return DnsManager(port=port, store=store, monitor=monitor, probe=probe)


def main() -> None:
    ensure_app_dirs()
    setup_logging()

    manager = build_manager()
    # picks the session back up if the previous process died while monitoring
    manager.monitor.resume()

    app = QApplication(sys.argv)
    app.setQuitOnLastWindowClosed(False)

    bridge = EventBridge()
    unsubscribe = manager.monitor.subscribe(bridge.event_received.emit)

    win = MainWindow(manager, bridge)

    def open_panel() -> None:
        win.show()
        win.raise_()
        win.activateWindow()

    tray = None
    if QSystemTrayIcon.isSystemTrayAvailable():
        notifier = ToastNotifierWin10() if sys.platform == "win32" else None
        tray = DnsTray(manager, bridge, open_panel, notifier=notifier)
        tray.show()
    else:
        app.setQuitOnLastWindowClosed(True)
    win.show()

    def shutdown() -> None:
        unsubscribe()
        manager.monitor.shutdown()

    app.aboutToQuit.connect(shutdown)

    def signal_handler(sig, frame):
        print("\nReceived interrupt signal (Ctrl+C), shutting down...")
        app.quit()

    if hasattr(signal, 'SIGINT'):
        signal.signal(signal.SIGINT, signal_handler)

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
