"""JavaScript evaluated inside the picked page.

Every script is a function expression for ``page.evaluate`` taking a single
options object. Nodes the picker adds to the page carry the UI attribute and
are ignored by the snapshot and by event forwarding.
"""
from __future__ import annotations

BINDING_NAME = "__pickbundleEvent"
"""Name of the Playwright binding events are forwarded through."""

SNAPSHOT_STYLE_PROPERTIES = (
    "display",
    "visibility",
    "opacity",
    "position",
    "zIndex",
    "pointerEvents",
    "overflow",
    "flexDirection",
    "justifyContent",
    "alignItems",
    "gridTemplateColumns",
    "gridTemplateRows",
)

SNAPSHOT_SCRIPT = """
({ uiAttr, styleProperties }) => {
    const state = (window.__pickbundle = window.__pickbundle || {});
    state.keys = state.keys || new WeakMap();
    state.nodes = state.nodes || new Map();
    state.nextKey = state.nextKey || 1;
    state.dirty = false;

    const keyOf = (el) => {
        let key = state.keys.get(el);
        if (!key) {
            key = String(state.nextKey++);
            state.keys.set(el, key);
            state.nodes.set(key, new WeakRef(el));
        }
        return key;
    };
    state.keyOf = keyOf;

    const round = (value) => Math.round(value * 100) / 100;

    const propsOf = (el) => {
        const tag = el.localName;
        const props = {};
        if (el.tabIndex !== undefined) props.tabIndex = el.tabIndex;
        if (tag === "input" || tag === "select" || tag === "textarea" || tag === "button") {
            props.type = el.type;
            props.value = el.value;
            if (tag === "input") props.checked = el.checked;
            props.disabled = el.disabled;
            if (tag !== "button") props.required = el.required;
            if (tag === "input" || tag === "textarea") props.readOnly = el.readOnly;
            if (el.validity) {
                props.valid = el.validity.valid;
                props.validationMessage = el.validationMessage;
            }
        }
        return props;
    };

    const serializeNode = (el) => {
        const rect = el.getBoundingClientRect();
        const computed = window.getComputedStyle(el);
        const style = {};
        for (const name of styleProperties) style[name] = computed[name];

        const children = [];
        for (const child of el.childNodes) {
            if (child.nodeType === Node.TEXT_NODE) {
                children.push(child.nodeValue);
            } else if (child.nodeType === Node.ELEMENT_NODE && !child.hasAttribute(uiAttr)) {
                children.push(serializeNode(child));
            }
        }

        return {
            key: keyOf(el),
            tag: el.localName,
            attrs: Array.from(el.attributes, (attr) => [attr.name, attr.value]),
            rect: { top: round(rect.top), left: round(rect.left), width: round(rect.width), height: round(rect.height) },
            style,
            props: propsOf(el),
            children,
        };
    };

    return {
        url: window.location.href,
        title: document.title,
        viewport: { width: window.innerWidth, height: window.innerHeight },
        devicePixelRatio: window.devicePixelRatio || 1,
        root: serializeNode(document.documentElement),
    };
}
"""

RUNTIME_SCRIPT = """
({ key, statefulFibers }) => {
    const state = window.__pickbundle || {};
    const ref = state.nodes && state.nodes.get(String(key));
    const el = ref && ref.deref();
    if (!el) return null;
    const marker = Object.keys(el).find(
        (name) => name.startsWith("__reactFiber$") || name.startsWith("__reactInternalInstance$")
    );
    if (!marker) return null;

    const fn = (value) => ({ $function: value.displayName || value.name || "anonymous" });
    const plain = (value, depth) => {
        if (value === null || value === undefined) return null;
        const kind = typeof value;
        if (kind === "string" || kind === "number" || kind === "boolean") return value;
        if (kind === "function") return fn(value);
        if (kind !== "object") return String(value);
        if (value instanceof Node) return "[node]";
        if (depth <= 0) return "[object]";
        if (Array.isArray(value)) return value.slice(0, 10).map((item) => plain(item, depth - 1));
        const out = {};
        for (const name of Object.keys(value).slice(0, 20)) {
            if (name.startsWith("_") || name === "children") continue;
            try {
                out[name] = plain(value[name], depth - 1);
            } catch (error) {
                // unreadable getter
            }
        }
        return out;
    };

    // flat list, innermost first; the host rebuilds the return links
    const fibers = [];
    const seen = new Set();
    let stateful = 0;
    for (let fiber = el[marker]; fiber && !seen.has(fiber); fiber = fiber.return) {
        seen.add(fiber);
        const type = fiber.type;
        const node = { type: typeof type === "function" ? fn(type) : typeof type === "string" ? type : null };
        if (typeof type === "function" && stateful < statefulFibers) {
            stateful += 1;
            node.memoizedProps = plain(fiber.memoizedProps, 2);
            let hook = fiber.memoizedState;
            const hooks = {};
            let cursor = hooks;
            for (let i = 0; hook && typeof hook === "object" && i < 4; i += 1) {
                cursor.memoizedState = plain(hook.memoizedState, 2);
                hook = hook.next;
                if (hook) cursor = cursor.next = {};
            }
            node.memoizedState = hooks;
        }
        fibers.push(node);
    }
    return { marker, fibers };
}
"""

INSTALL_SCRIPT = """
({ uiAttr, binding }) => {
    const state = (window.__pickbundle = window.__pickbundle || {});
    if (state.uninstall) state.uninstall();
    state.keys = state.keys || new WeakMap();
    state.nodes = state.nodes || new Map();
    state.nextKey = state.nextKey || 1;

    const keyOf = (el) => {
        let key = state.keys.get(el);
        if (!key) {
            key = String(state.nextKey++);
            state.keys.set(el, key);
            state.nodes.set(key, new WeakRef(el));
            state.dirty = true;
        }
        return key;
    };
    const isUi = (el) => !!(el && el.closest && el.closest(`[${uiAttr}]`));
    const send = (payload) => {
        const forward = window[binding];
        if (typeof forward === "function") forward(payload);
    };

    let hovered = null;
    let pending = null;
    const onMove = (event) => {
        pending = event;
        if (state.frame) return;
        state.frame = requestAnimationFrame(() => {
            state.frame = null;
            const el = document.elementFromPoint(pending.clientX, pending.clientY);
            if (!el || el.nodeType !== Node.ELEMENT_NODE || isUi(el) || el === hovered) return;
            hovered = el;
            send({ type: "move", key: keyOf(el), dirty: !!state.dirty });
        });
    };
    const onClick = (event) => {
        event.preventDefault();
        event.stopPropagation();
        event.stopImmediatePropagation();
        if (isUi(event.target)) return;
        send({ type: "click", key: hovered ? keyOf(hovered) : null, dirty: !!state.dirty });
    };
    const onKey = (event) => {
        const key = event.key;
        const chord = (event.metaKey || event.ctrlKey) && key.toLowerCase() === "z";
        if (key !== "Escape" && key !== "Enter" && key !== "Backspace" && key !== "Delete" && !chord) return;
        event.preventDefault();
        send({ type: "key", key, ctrl: event.ctrlKey, meta: event.metaKey, dirty: !!state.dirty });
    };
    const onViewport = () => send({ type: "viewport", dirty: true });

    const observer = new MutationObserver((records) => {
        for (const record of records) {
            const target = record.target.nodeType === Node.ELEMENT_NODE ? record.target : record.target.parentElement;
            if (!isUi(target)) {
                state.dirty = true;
                return;
            }
        }
    });
    observer.observe(document.documentElement, { subtree: true, childList: true, attributes: true, characterData: true });

    document.addEventListener("mousemove", onMove, true);
    document.addEventListener("click", onClick, true);
    document.addEventListener("keydown", onKey, true);
    window.addEventListener("scroll", onViewport, true);
    window.addEventListener("resize", onViewport, true);

    state.uninstall = () => {
        document.removeEventListener("mousemove", onMove, true);
        document.removeEventListener("click", onClick, true);
        document.removeEventListener("keydown", onKey, true);
        window.removeEventListener("scroll", onViewport, true);
        window.removeEventListener("resize", onViewport, true);
        observer.disconnect();
        if (state.frame) cancelAnimationFrame(state.frame);
        state.frame = null;
        state.uninstall = null;
    };
}
"""

OVERLAY_SCRIPT = """
({ uiAttr, highlight, badges, toast }) => {
    const state = (window.__pickbundle = window.__pickbundle || {});
    const make = (css) => {
        const el = document.createElement("div");
        el.setAttribute(uiAttr, "true");
        el.style.cssText = css;
        document.documentElement.appendChild(el);
        return el;
    };

    if (!state.overlay || !state.overlay.isConnected) {
        state.overlay = make(
            "position:fixed;pointer-events:none;z-index:2147483646;border:2px solid #2563eb;" +
            "background:rgba(37,99,235,0.12);border-radius:2px;display:none;"
        );
    }
    if (!state.badgeLayer || !state.badgeLayer.isConnected) {
        state.badgeLayer = make("position:fixed;inset:0;pointer-events:none;z-index:2147483647;");
    }

    if (highlight) {
        Object.assign(state.overlay.style, {
            display: "block",
            top: `${highlight.top}px`,
            left: `${highlight.left}px`,
            width: `${highlight.width}px`,
            height: `${highlight.height}px`,
        });
    } else if (highlight === null) {
        state.overlay.style.display = "none";
    }

    if (badges) {
        state.badgeLayer.replaceChildren();
        for (const badge of badges) {
            const el = document.createElement("div");
            el.setAttribute(uiAttr, "true");
            el.textContent = String(badge.number);
            el.style.cssText =
                "position:fixed;min-width:20px;height:20px;padding:0 6px;border-radius:10px;" +
                "background:#2563eb;color:#fff;font:600 12px/20px system-ui,sans-serif;text-align:center;" +
                `top:${badge.top}px;left:${badge.left}px;box-shadow:0 1px 4px rgba(0,0,0,0.3);`;
            state.badgeLayer.appendChild(el);
        }
    }

    if (toast) {
        if (state.toast) state.toast.remove();
        if (state.toastTimer) clearTimeout(state.toastTimer);
        state.toast = make(
            "position:fixed;left:50%;bottom:24px;transform:translateX(-50%);z-index:2147483647;" +
            "background:#111827;color:#fff;padding:10px 16px;border-radius:8px;" +
            "font:500 13px/1.4 system-ui,sans-serif;box-shadow:0 4px 16px rgba(0,0,0,0.3);pointer-events:none;"
        );
        state.toast.textContent = toast.message;
        state.toastTimer = setTimeout(() => {
            if (state.toast) state.toast.remove();
            state.toast = null;
        }, toast.durationMs);
    }
}
"""

SET_OVERLAY_VISIBILITY_SCRIPT = """
({ uiAttr, visible }) => {
    for (const el of document.querySelectorAll(`[${uiAttr}]`)) {
        el.style.visibility = visible ? "" : "hidden";
    }
}
"""

TEARDOWN_SCRIPT = """
({ uiAttr }) => {
    const state = window.__pickbundle;
    if (state && state.uninstall) state.uninstall();
    const toast = state ? state.toast : null;
    for (const el of document.querySelectorAll(`[${uiAttr}]`)) {
        if (el !== toast) el.remove();
    }
    if (state) {
        state.overlay = null;
        state.badgeLayer = null;
    }
}
"""

__all__ = [
    "BINDING_NAME",
    "INSTALL_SCRIPT",
    "OVERLAY_SCRIPT",
    "SET_OVERLAY_VISIBILITY_SCRIPT",
    "SNAPSHOT_SCRIPT",
    "SNAPSHOT_STYLE_PROPERTIES",
    "TEARDOWN_SCRIPT",
]
