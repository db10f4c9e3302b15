# Script Version: 1.0.0 | Phase 3: Interaction Flow
# Description: Background thread that owns the asyncio loop and the ApplicationController.
# Implementation: The GUI schedules coroutines with run_coroutine_threadsafe; controller events come back as Qt signals.

import asyncio
from PyQt6.QtCore import QThread, pyqtSignal

from controller import ApplicationController, ControllerError


class ControllerWorker(QThread):
    phase_changed = pyqtSignal(str)
    tree_changed = pyqtSignal(object)      # Node or None (immutable, safe to hand over)
    analysis_ready = pyqtSignal(dict)
    selection_changed = pyqtSignal(object)
    error = pyqtSignal(str)

    def __init__(self, orchestrator):
        super().__init__()
        self.loop = asyncio.new_event_loop()
        self.controller = ApplicationController(orchestrator)
        self.controller.add_listener(self._forward)

    def run(self):
        asyncio.set_event_loop(self.loop)
        print("[WORKER] Event loop started.")
        self.loop.run_forever()
        self.loop.close()
        print("[WORKER] Event loop stopped.")

    def stop(self):
        self.loop.call_soon_threadsafe(self.loop.stop)
        self.wait()

    def _forward(self, event, controller):
        # Runs on the loop thread; Qt queues the signal to the GUI thread.
        if event == "phase":
            self.phase_changed.emit(controller.phase.value)
        elif event == "tree":
            self.tree_changed.emit(controller.root)
        elif event == "analysis":
            self.analysis_ready.emit(dict(controller.analysis or {}))
        elif event == "selection":
            self.selection_changed.emit(controller.selected_node)
        elif event == "error":
            self.error.emit(controller.error or "Unknown error")

    def submit(self, method_name, *args):
        """Schedules `controller.<method_name>(*args)` on the loop thread."""
        async def _call():
            try:
                result = getattr(self.controller, method_name)(*args)
                if asyncio.iscoroutine(result):
                    result = await result
                return result
            except ControllerError as e:
                self.error.emit(str(e))
            except Exception as e:
                print(f"[ERROR] ControllerWorker '{method_name}' failed: {e}")
                self.error.emit(str(e))

        return asyncio.run_coroutine_threadsafe(_call(), self.loop)
