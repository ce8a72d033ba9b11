"""
Localized duplicate of the analysis summary.

Static text only: each locale is a template of headings, labels and metric
checklists. Unknown locales render with the default template.
"""

from __future__ import annotations

from typing import Any

from .metrics import METRIC_LABELS, format_metric, rate_metric
from .models import DEFAULT_LOCALE, Report

LOCALIZED_METRICS = ("lcp", "tbt", "cls", "fcp")

LOCALIZED_TEMPLATES: dict[str, dict[str, Any]] = {
    "ja": {
        "title": "# Lighthouse パフォーマンス分析レポート",
        "url": "URL",
        "fetched": "計測日時",
        "scores": "## パフォーマンススコア",
        "overall": "総合スコア",
        "cwv": "## Core Web Vitals 分析",
        "rating": {"good": "良好", "needs-improvement": "要改善", "poor": "不良"},
        "checklist": "調査項目",
        "improvements": "改善案",
        "priorities": "## 優先改善項目",
        "chains": "### クリティカルリクエストチェーン",
        "chains_intro": "以下のリソースがレンダリングをブロックしています：",
        "unused": "### 未使用コード",
        "unused_share": "全体の{percent}%のコードが未使用です。",
        "unused_savings": "削減可能サイズ: {kb}KB",
        "actions": "## 推奨アクション",
        "impact": "加重インパクト",
        "category": "カテゴリ",
        "no_actions": "- 改善が必要な項目は検出されませんでした。",
        "next_steps": "## 次のステップ",
        "steps": [
            "上記の優先改善項目から着手",
            "各メトリクスのチェックリストに従って詳細調査",
            "改善後に再度Lighthouseを実行して効果を測定",
        ],
        "checklists": {
            "lcp": {
                "checklist": [
                    "最大のコンテンツ要素を特定する（画像、動画、テキストブロック）",
                    "サーバーレスポンスタイム（TTFB）を確認",
                    "レンダリングをブロックしているリソースを特定",
                ],
                "improvements": [
                    "画像を最適化（WebP/AVIF形式、適切なサイズ、遅延読み込み）",
                    "Critical CSSをインライン化",
                    "リソースヒント（preconnect、preload）を使用",
                ],
            },
            "tbt": {
                "checklist": [
                    "メインスレッドをブロックしている長いタスクを特定",
                    "JavaScriptの実行時間を分析（bootup-time）",
                    "サードパーティスクリプトの影響を確認",
                ],
                "improvements": [
                    "長いタスクを分割（タスクを50ms以下に）",
                    "未使用のJavaScriptを削除",
                    "サードパーティスクリプトを遅延読み込み",
                ],
            },
            "cls": {
                "checklist": [
                    "レイアウトシフトを引き起こしている要素を特定（layout-shift-elements）",
                    "画像・動画・iframe・広告のサイズ指定を確認",
                    "Webフォントの読み込みによるシフトを確認",
                ],
                "improvements": [
                    "画像・動画・iframeに明示的なサイズを設定",
                    "font-display: swapまたはoptionalを使用",
                    "動的コンテンツ用の空間を事前に確保",
                ],
            },
            "fcp": {
                "checklist": [
                    "サーバーレスポンスタイム（TTFB）を確認",
                    "レンダリングブロックリソースを特定",
                    "フォントの読み込み戦略を確認",
                ],
                "improvements": [
                    "サーバーレスポンスを最適化",
                    "レンダリングブロックJavaScriptを削除",
                    "HTTPキャッシュを活用",
                ],
            },
        },
    },
    "es": {
        "title": "# Informe de análisis de rendimiento de Lighthouse",
        "url": "URL",
        "fetched": "Fecha de medición",
        "scores": "## Puntuación de rendimiento",
        "overall": "Puntuación general",
        "cwv": "## Análisis de Core Web Vitals",
        "rating": {"good": "Bueno", "needs-improvement": "Necesita mejora", "poor": "Deficiente"},
        "checklist": "Qué revisar",
        "improvements": "Mejoras sugeridas",
        "priorities": "## Mejoras prioritarias",
        "chains": "### Cadenas de solicitudes críticas",
        "chains_intro": "Los siguientes recursos bloquean el renderizado:",
        "unused": "### Código sin usar",
        "unused_share": "El {percent}% del código no se utiliza.",
        "unused_savings": "Ahorro posible: {kb}KB",
        "actions": "## Acciones recomendadas",
        "impact": "Impacto ponderado",
        "category": "Categoría",
        "no_actions": "- No se detectaron elementos que requieran mejoras.",
        "next_steps": "## Próximos pasos",
        "steps": [
            "Empezar por las mejoras prioritarias anteriores",
            "Investigar cada métrica con su lista de verificación",
            "Volver a ejecutar Lighthouse para medir el efecto",
        ],
        "checklists": {
            "lcp": {
                "checklist": [
                    "Identificar el elemento de contenido más grande",
                    "Revisar el tiempo de respuesta del servidor (TTFB)",
                    "Localizar los recursos que bloquean el renderizado",
                ],
                "improvements": [
                    "Optimizar imágenes (WebP/AVIF, tamaño adecuado, carga diferida)",
                    "Insertar el CSS crítico en línea",
                    "Usar indicaciones de recursos (preconnect, preload)",
                ],
            },
            "tbt": {
                "checklist": [
                    "Identificar las tareas largas del hilo principal",
                    "Analizar el tiempo de ejecución de JavaScript (bootup-time)",
                    "Revisar el impacto de scripts de terceros",
                ],
                "improvements": [
                    "Dividir las tareas largas (menos de 50ms)",
                    "Eliminar JavaScript sin usar",
                    "Cargar en diferido los scripts de terceros",
                ],
            },
            "cls": {
                "checklist": [
                    "Identificar los elementos que provocan desplazamientos (layout-shift-elements)",
                    "Comprobar que imágenes, vídeos e iframes tienen dimensiones",
                    "Revisar desplazamientos causados por fuentes web",
                ],
                "improvements": [
                    "Definir dimensiones explícitas para imágenes, vídeos e iframes",
                    "Usar font-display: swap u optional",
                    "Reservar espacio para el contenido dinámico",
                ],
            },
            "fcp": {
                "checklist": [
                    "Revisar el tiempo de respuesta del servidor (TTFB)",
                    "Localizar los recursos que bloquean el renderizado",
                    "Revisar la estrategia de carga de fuentes",
                ],
                "improvements": [
                    "Optimizar la respuesta del servidor",
                    "Eliminar JavaScript que bloquea el renderizado",
                    "Aprovechar la caché HTTP",
                ],
            },
        },
    },
}


def resolve_locale(locale: str | None) -> str:
    if locale and locale in LOCALIZED_TEMPLATES:
        return locale
    if locale and locale.split("-")[0].split("_")[0] in LOCALIZED_TEMPLATES:
        return locale.split("-")[0].split("_")[0]
    return DEFAULT_LOCALE


def _score_marker(score: int) -> str:
    if score >= 90:
        return "🟢"
    if score >= 50:
        return "🟡"
    return "🔴"


def render_localized_summary(report: Report, context: dict[str, Any], locale: str | None = None) -> str:
    """Render the localized summary block.

    ``context`` carries the already computed analyses: ``metrics`` (dict),
    ``problems`` (the ranked recommendations to show), ``chains`` (dict or
    None) and ``unused_code`` (dict or None).
    """
    t = LOCALIZED_TEMPLATES[resolve_locale(locale)]
    lines: list[str] = [t["title"], ""]
    lines.append(f"{t['url']}: {report.url or 'n/a'}")
    lines.append(f"{t['fetched']}: {report.fetch_time or 'n/a'}")
    lines.append("")

    lines.append(t["scores"])
    performance = report.categories.get("performance")
    if performance is not None and performance.score is not None:
        score = round(performance.score * 100)
        lines.append(f"{t['overall']}: {score}/100 {_score_marker(score)}")
    lines.append("")

    lines.append(t["cwv"])
    lines.append("")
    metrics = context.get("metrics") or {}
    for key in LOCALIZED_METRICS:
        if key not in metrics:
            continue
        value = metrics[key]
        rating = rate_metric(key, value)
        lines.append(f"### {METRIC_LABELS[key]}: {format_metric(key, value)} ({t['rating'][rating]})")
        if rating != "good":
            checklist = t["checklists"][key]
            lines.append(f"**{t['checklist']}:**")
            lines.extend(f"- {item}" for item in checklist["checklist"])
            lines.append(f"**{t['improvements']}:**")
            lines.extend(f"- {item}" for item in checklist["improvements"])
        lines.append("")

    lines.append(t["priorities"])
    lines.append("")
    chains = context.get("chains")
    if chains and chains["longest_chain"]["nodes"]:
        lines.append(t["chains"])
        lines.append(t["chains_intro"])
        for node in chains["longest_chain"]["nodes"][:5]:
            lines.append(f"- {node['url']} ({round(node['duration'])}ms)")
        lines.append("")
    unused = context.get("unused_code")
    if unused and unused["unused_percent"] > 30:
        lines.append(t["unused"])
        lines.append(t["unused_share"].format(percent=round(unused["unused_percent"])))
        lines.append(t["unused_savings"].format(kb=round(unused["total_unused_bytes"] / 1024)))
        lines.append("")

    lines.append(t["actions"])
    lines.append("")
    problems = context.get("problems") or []
    if not problems:
        lines.append(t["no_actions"])
    for idx, problem in enumerate(problems, start=1):
        lines.append(f"{idx}. **{problem.title or problem.id}**")
        lines.append(f"   - {t['category']}: {problem.category}")
        lines.append(f"   - {t['impact']}: {problem.weighted_impact:.2f}")
    lines.append("")

    lines.append(t["next_steps"])
    lines.append("")
    lines.extend(f"{idx}. {step}" for idx, step in enumerate(t["steps"], start=1))
    return "\n".join(lines)
