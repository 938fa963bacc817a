# concert/concert_worker.py
from PySide6.QtCore import QObject, Signal, Slot
from .concert_core import ConcertTerminal
from .concert_errors import ConcertError
from typing import Optional


class ConcertWorker(QObject):
    """
    Qt-friendly worker that owns a ConcertTerminal and runs its blocking calls.
    Intended to be moved to a dedicated QThread via QObject.moveToThread(), so the
    cash register UI never waits on the serial line.
    """

    # UI-friendly signals
    status = Signal(str)
    error = Signal(str)
    pinged = Signal(bool)            # terminal answered ENQ with ACK
    requestSent = Signal(object)     # frame (bytes) written to the terminal
    finished = Signal()              # emitted after every slot, success or not

    def __init__(self,
                 port: str,
                 parent: Optional[QObject] = None,
                 terminal: Optional[ConcertTerminal] = None):
        super().__init__(parent)
        self.port = port
        self._busy = False

        # Allow DI for tests; otherwise create a real terminal
        self.terminal = terminal or ConcertTerminal(port)

        # Wire core callbacks to Qt signals
        self.terminal.on_status = self.status.emit
        self.terminal.on_error = self.error.emit

    @Slot()
    def ping(self):
        """Run one ENQ/ACK handshake and report the outcome through `pinged`."""
        if not self._claim():
            return
        try:
            self.pinged.emit(self.terminal.is_available())
        finally:
            self._release()

    @Slot(int, str)
    def sendPayment(self, amount: int, currency: str):
        """
        Send a simple bank-card credit of `amount` minor units.
        The terminal already reports failures on `error`; nothing is raised across the thread.
        """
        if not self._claim():
            return
        try:
            try:
                frame = self.terminal.simple_request(amount, currency)
            except ConcertError:
                return  # already on `error` via the terminal callback
            self.requestSent.emit(frame)
        finally:
            self._release()

    # --- one request at a time ---
    def _claim(self) -> bool:
        if self._busy:
            self.error.emit("Terminal busy; request ignored")
            return False
        self._busy = True
        return True

    def _release(self):
        self._busy = False
        self.finished.emit()
