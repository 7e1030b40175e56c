# recorder/selectors.py
import orjson

REDACTED = "••••••"

RECORDER_JS = r"""
(() => {
  const REDACTED = %REDACTED%;

  function elInfo(el) {
    if (!el || !(el instanceof Element)) return null;
    let text = "";
    try { text = (el.innerText || "").trim(); } catch { text = ""; }
    return {
      id: el.id || "",
      text: text,
      tagName: el.tagName || ""
    };
  }

  function isTextField(el) {
    if (!(el instanceof Element)) return false;
    if (el.tagName === "TEXTAREA") return true;
    if (el.isContentEditable) return true;
    if (el.tagName !== "INPUT") return false;
    const t = (el.getAttribute("type") || "text").toLowerCase();
    return ["text", "email", "search", "url", "tel", "number", "password"].includes(t);
  }

  function fieldValue(el) {
    if (el.tagName === "INPUT" && (el.type || "").toLowerCase() === "password") return REDACTED;
    if (el.isContentEditable) return el.innerText || "";
    return (el.value ?? "").toString();
  }

  // Keep a single recorder instance per document
  if (window.__actionRecorder) return;
  window.__actionRecorder = {
    _active: false,
    start() {
      if (this._active) return;
      this._active = true;

      const send = (payload) => {
        if (!this._active) return;
        try {
          // binding defined by Python: window.__actionRecorderBridge
          window.__actionRecorderBridge({ timestamp: new Date().toISOString(), ...payload });
        } catch (e) {
          console.warn("actionRecorderBridge error", e);
        }
      };
      this._send = send;

      this._click = (e) => {
        send({
          type: "click",
          coordinates: { x: e.clientX, y: e.clientY },
          element: elInfo(e.target)
        });
      };
      document.addEventListener("click", this._click, true);

      // every key release carries the field's full current value
      this._keyup = (e) => {
        const el = e.target;
        if (!isTextField(el)) return;
        send({ type: "type", text: fieldValue(el) });
      };
      document.addEventListener("keyup", this._keyup, true);
    },
    stop() {
      if (!this._active) return;
      document.removeEventListener("click", this._click, true);
      document.removeEventListener("keyup", this._keyup, true);
      this._active = false;
    },
    capture(selector) {
      if (!this._active) return false;
      const target = document.querySelector(selector || %CAPTURE_SELECTOR%);
      if (!target) return false;
      // serialized synchronously, at the moment of the request
      this._send({ type: "capture", content: target.outerHTML });
      return true;
    }
  };
})();
"""


def _js_string(value: str) -> str:
    return orjson.dumps(value).decode("utf-8")


def recorder_script(capture_selector: str) -> str:
    return (
        RECORDER_JS
        .replace("%REDACTED%", _js_string(REDACTED))
        .replace("%CAPTURE_SELECTOR%", _js_string(capture_selector))
    )
