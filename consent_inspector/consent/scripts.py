"""In-page scripts used by the vendor probes.

Every script is a self-contained function expression passed to
``page.evaluate`` as a string; arguments travel as one JSON value.
"""

from __future__ import annotations

# Resolves dotted global paths such as "UC_UI" or "Cookiebot.consent".
_RESOLVE = """
    const resolve = (path) => path.split('.').reduce(
        (obj, key) => (obj === null || obj === undefined ? undefined : obj[key]),
        window,
    );
"""

GLOBAL_TYPES_SCRIPT = (
    """(paths) => {"""
    + _RESOLVE
    + """
    const types = {};
    for (const path of paths) {
        const value = resolve(path);
        types[path] = value === null ? 'undefined' : typeof value;
    }
    return types;
}"""
)

# Calls target[method](...args).  A method that is missing, throws,
# or returns a rejected promise reports ok=false.
CALL_METHOD_SCRIPT = (
    """async ({ target, method, args }) => {"""
    + _RESOLVE
    + """
    const obj = resolve(target);
    if (obj === null || obj === undefined) {
        return { ok: false, error: 'missing target ' + target };
    }
    const fn = obj[method];
    if (typeof fn !== 'function') {
        return { ok: false, error: 'missing method ' + method };
    }
    try {
        await fn.apply(obj, args || []);
        return { ok: true, error: null };
    } catch (e) {
        return { ok: false, error: String((e && e.message) || e) };
    }
}"""
)

TCF_DATA_SCRIPT = """() => new Promise((resolve) => {
    if (typeof window.__tcfapi !== 'function') {
        resolve(null);
        return;
    }
    const timer = setTimeout(() => resolve(null), 2000);
    try {
        window.__tcfapi('getTCData', 2, (data, success) => {
            clearTimeout(timer);
            if (!success || !data) {
                resolve(null);
                return;
            }
            resolve({
                tcString: data.tcString || null,
                gdprApplies: typeof data.gdprApplies === 'boolean' ? data.gdprApplies : null,
                cmpId: data.cmpId || null,
                cmpVersion: data.cmpVersion || null,
                tcfPolicyVersion: data.tcfPolicyVersion || null,
                eventStatus: data.eventStatus || null,
                purposeConsents: (data.purpose && data.purpose.consents) || {},
            });
        });
    } catch (e) {
        clearTimeout(timer);
        resolve(null);
    }
})"""

# ── Decision state ──────────────────────────────────────────────
# Each returns one of: accepted, rejected, partial, none, unknown.

USERCENTRICS_STATE_SCRIPT = """() => {
    const ui = window.UC_UI;
    if (!ui || typeof ui.getServicesBaseInfo !== 'function') return 'unknown';
    if (typeof ui.isConsentRequired === 'function' && ui.isConsentRequired()) return 'none';
    const optional = (ui.getServicesBaseInfo() || []).filter(
        (s) => !(s.isEssential || s.categorySlug === 'essential'),
    );
    if (!optional.length) return 'unknown';
    const granted = optional.filter((s) => s.consent && s.consent.status).length;
    return granted === 0 ? 'rejected' : granted === optional.length ? 'accepted' : 'partial';
}"""

USERCENTRICS_VERSION_SCRIPT = """() => (window.__ucCmp ? 'v3' : (window.UC_UI ? 'v2' : null))"""

REAL_COOKIE_BANNER_STATE_SCRIPT = """() => {
    const manager = window.rcbConsentManager;
    if (!manager || typeof manager.getUserDecision !== 'function') return 'unknown';
    const decision = manager.getUserDecision();
    if (!decision) return 'none';
    const groups = ((manager.getOptions() || {}).groups) || [];
    const consented = decision.consent || {};
    let total = 0;
    let given = 0;
    for (const group of groups) {
        if (group.isEssential || group.slug === 'essential') continue;
        for (const item of group.items || []) {
            total += 1;
            if ((consented[group.id] || []).includes(item.id)) given += 1;
        }
    }
    if (!total) return 'unknown';
    return given === 0 ? 'rejected' : given === total ? 'accepted' : 'partial';
}"""

# Returns [{id, slug, essential, items: [ids]}] for every consent group.
REAL_COOKIE_BANNER_GROUPS_SCRIPT = """() => {
    const manager = window.rcbConsentManager;
    if (!manager || typeof manager.getOptions !== 'function') return [];
    const groups = ((manager.getOptions() || {}).groups) || [];
    return groups.map((group) => ({
        id: group.id,
        slug: group.slug || null,
        essential: Boolean(group.isEssential || group.slug === 'essential'),
        items: (group.items || []).map((item) => item.id),
    }));
}"""

ONETRUST_STATE_SCRIPT = """() => {
    const ot = window.OneTrust;
    if (ot && typeof ot.IsAlertBoxClosed === 'function' && !ot.IsAlertBoxClosed()) return 'none';
    const active = String(window.OnetrustActiveGroups || '').split(',').filter(Boolean);
    if (!active.length) return 'unknown';
    const all = ((ot && typeof ot.GetDomainData === 'function' && ot.GetDomainData().Groups) || [])
        .map((g) => g.CustomGroupId)
        .filter((id) => id && id !== 'C0001');
    const optional = active.filter((id) => id !== 'C0001');
    if (!optional.length) return 'rejected';
    return all.length && all.every((id) => optional.includes(id)) ? 'accepted' : 'partial';
}"""

COOKIEBOT_STATE_SCRIPT = """() => {
    const cb = window.Cookiebot || window.CookieConsent;
    if (!cb || !cb.consent) return 'unknown';
    if (!cb.hasResponse) return 'none';
    const given = [cb.consent.preferences, cb.consent.statistics, cb.consent.marketing].filter(Boolean).length;
    return given === 0 ? 'rejected' : given === 3 ? 'accepted' : 'partial';
}"""

DIDOMI_STATE_SCRIPT = """() => {
    const d = window.Didomi;
    if (!d || typeof d.getUserStatus !== 'function') return 'unknown';
    if (typeof d.shouldConsentBeCollected === 'function' && d.shouldConsentBeCollected()) return 'none';
    const global = ((d.getUserStatus() || {}).purposes || {}).global || {};
    const enabled = global.enabled || [];
    const disabled = global.disabled || [];
    if (!enabled.length && !disabled.length) return 'unknown';
    return enabled.length === 0 ? 'rejected' : disabled.length === 0 ? 'accepted' : 'partial';
}"""

DIDOMI_VERSION_SCRIPT = """() => (window.Didomi && window.Didomi.version) || null"""
