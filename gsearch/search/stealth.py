"""Init scripts that hide automation signals from page scripts."""

from __future__ import annotations

import json

from gsearch.search.models import FingerprintConfig

SCREEN_WIDTH = 1920
SCREEN_HEIGHT = 1080
SCREEN_DEPTH = 24

WEBGL_VENDOR = "Intel Inc."
WEBGL_RENDERER = "Intel Iris OpenGL Engine"

_NAVIGATOR_SCRIPT = """
(() => {
  Object.defineProperty(navigator, 'webdriver', { get: () => false });
  Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
  Object.defineProperty(navigator, 'languages', { get: () => __LANGUAGES__ });
  window.chrome = {
    runtime: {},
    loadTimes: function () {},
    csi: function () {},
    app: {},
  };
})();
"""

_WEBGL_SCRIPT = """
(() => {
  const patch = (proto) => {
    const getParameter = proto.getParameter;
    proto.getParameter = function (parameter) {
      if (parameter === 37445) return __VENDOR__;
      if (parameter === 37446) return __RENDERER__;
      return getParameter.call(this, parameter);
    };
  };
  if (typeof WebGLRenderingContext !== 'undefined') patch(WebGLRenderingContext.prototype);
  if (typeof WebGL2RenderingContext !== 'undefined') patch(WebGL2RenderingContext.prototype);
})();
"""

_SCREEN_SCRIPT = """
(() => {
  const define = (name, value) => Object.defineProperty(window.screen, name, { get: () => value });
  define('width', __WIDTH__);
  define('height', __HEIGHT__);
  define('availWidth', __WIDTH__);
  define('availHeight', __HEIGHT__);
  define('colorDepth', __DEPTH__);
  define('pixelDepth', __DEPTH__);
})();
"""


def navigator_languages(locale: str) -> list[str]:
    """en-GB -> ["en-GB", "en"]; always non-empty."""
    tag = (locale or "").strip() or "en-US"
    base = tag.split("-", 1)[0]
    languages = [tag]
    if base and base != tag:
        languages.append(base)
    return languages


def build_init_scripts(fingerprint: FingerprintConfig) -> list[str]:
    """Scripts to register on a context before any page is opened."""
    return [
        _NAVIGATOR_SCRIPT.replace(
            "__LANGUAGES__", json.dumps(navigator_languages(fingerprint.locale))
        ),
        _WEBGL_SCRIPT.replace("__VENDOR__", json.dumps(WEBGL_VENDOR)).replace(
            "__RENDERER__", json.dumps(WEBGL_RENDERER)
        ),
        _SCREEN_SCRIPT.replace("__WIDTH__", str(SCREEN_WIDTH))
        .replace("__HEIGHT__", str(SCREEN_HEIGHT))
        .replace("__DEPTH__", str(SCREEN_DEPTH)),
    ]
