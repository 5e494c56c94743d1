"""Page-side JavaScript used by the extraction strategies.

The hook installer is registered as an init script so the page's own
``fetch``/``XMLHttpRequest.open``/``URL.createObjectURL`` calls are
observed from the very first script. It is idempotent: evaluating it again
after navigation is a no-op when the init script already ran.
"""

from __future__ import annotations

from dataclasses import dataclass

_HOOK_INSTALLER = r"""
(() => {
  if (window.__animestreamHook) return;
  const VIDEO_RE = /\.(m3u8|mp4|ts|webm)(\?|$)/i;
  const state = { hit: null, blobBacked: false, waiters: [] };
  const report = (type, url) => {
    if (state.hit || !url) return;
    const value = String(url);
    if (value.startsWith('blob:')) return;
    state.hit = { type, url: value };
    state.waiters.splice(0).forEach((resolve) => resolve(state.hit));
  };

  const origFetch = window.fetch;
  if (origFetch) {
    window.fetch = function (resource) {
      try {
        const url = typeof resource === 'string' ? resource : resource && resource.url;
        if (url && VIDEO_RE.test(url)) report('fetch', url);
      } catch (e) {}
      return origFetch.apply(this, arguments);
    };
  }

  const origOpen = XMLHttpRequest.prototype.open;
  XMLHttpRequest.prototype.open = function (method, url) {
    try {
      if (url && VIDEO_RE.test(String(url))) report('xhr', url);
    } catch (e) {}
    return origOpen.apply(this, arguments);
  };

  const origCreate = URL.createObjectURL;
  URL.createObjectURL = function (obj) {
    try {
      if (typeof MediaSource !== 'undefined' && obj instanceof MediaSource) {
        state.blobBacked = true;
      }
    } catch (e) {}
    return origCreate.apply(this, arguments);
  };

  const scan = () => {
    const el = document.querySelector('video[src], source[src], video');
    if (!el) return;
    const src = el.currentSrc || el.src || el.getAttribute('src');
    if (src && !String(src).startsWith('blob:')) report('mutation', src);
  };
  const observe = () => {
    const root = document.documentElement || document.body;
    if (!root) return;
    const observer = new MutationObserver(() => {
      scan();
      if (state.hit) observer.disconnect();
    });
    observer.observe(root, {
      childList: true,
      subtree: true,
      attributes: true,
      attributeFilter: ['src'],
    });
    scan();
  };
  if (document.documentElement) {
    observe();
  } else {
    document.addEventListener('DOMContentLoaded', observe, { once: true });
  }

  window.__animestreamHook = {
    state,
    wait(ms) {
      if (state.hit) return Promise.resolve(state.hit);
      return new Promise((resolve) => {
        state.waiters.push(resolve);
        setTimeout(() => resolve(state.hit), ms);
      });
    },
  };
})()
"""

DOM_SCAN_SCRIPT = r"""
() => {
  for (const el of document.querySelectorAll('video, source')) {
    const src = el.currentSrc || el.src || el.getAttribute('src');
    if (src && !String(src).startsWith('blob:')) return String(src);
  }
  const re = /https?:\/\/[^"'\s<>]+\.(?:mp4|m3u8|webm|mkv|mpd)(?:\?[^"'\s<>]*)?/i;
  for (const script of document.querySelectorAll('script')) {
    const match = (script.textContent || '').match(re);
    if (match) return match[0];
  }
  return null;
}
"""

FINAL_VIDEO_SCRIPT = r"""
() => {
  const video = document.querySelector('video');
  if (!video) return null;
  const hook = window.__animestreamHook;
  return {
    src: video.src || null,
    currentSrc: video.currentSrc || null,
    blobBacked: !!(hook && hook.state.blobBacked),
  };
}
"""


@dataclass(frozen=True)
class InstrumentationScript:
    """Declarative page instrumentation handed to the browsing session.

    ``installer`` goes into ``add_init_script``; :attr:`await_expression`
    is evaluated by the hook strategy with the timeout in milliseconds and
    resolves to ``{type, url}`` or ``null``.
    """

    installer: str = _HOOK_INSTALLER

    @property
    def await_expression(self) -> str:
        return (
            "async (timeoutMs) => {\n"
            f"{self.installer};\n"
            "return window.__animestreamHook.wait(timeoutMs);\n"
            "}"
        )


DEFAULT_INSTRUMENTATION = InstrumentationScript()
