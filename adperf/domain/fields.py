"""Canonical field names and the bilingual (Spanish/English) header tables."""

from __future__ import annotations

from enum import Enum
from typing import Mapping


class CanonicalField(str, Enum):
    ACCOUNT_NAME = "account_name"
    CAMPAIGN_NAME = "campaign_name"
    AD_SET_NAME = "ad_set_name"
    AD_NAME = "ad_name"
    DAY = "day"
    AGE = "age"
    GENDER = "gender"
    CAMPAIGN_DELIVERY = "campaign_delivery"
    AD_SET_DELIVERY = "ad_set_delivery"
    AD_DELIVERY = "ad_delivery"
    INCLUDED_AUDIENCES = "included_custom_audiences"
    EXCLUDED_AUDIENCES = "excluded_custom_audiences"
    CURRENCY = "currency"
    OBJECTIVE = "objective"
    VIDEO_FILE_NAME = "video_file_name"
    IMAGE_NAME = "image_name"
    REPORT_START = "report_start"
    REPORT_END = "report_end"
    SPEND = "spend"
    IMPRESSIONS = "impressions"
    REACH = "reach"
    FREQUENCY = "frequency"
    PURCHASES = "purchases"
    PURCHASE_VALUE = "purchase_value"
    CLICKS_ALL = "clicks_all"
    LINK_CLICKS = "link_clicks"
    LANDING_PAGE_VIEWS = "landing_page_views"
    ATTENTION = "attention"
    INTEREST = "interest"
    DESIRE = "desire"
    ADDS_TO_CART = "adds_to_cart"
    CHECKOUTS_INITIATED = "checkouts_initiated"
    THRUPLAYS = "thruplays"
    VIDEO_PLAYS_3S = "video_plays_3s"
    VIDEO_AVERAGE_PLAY_TIME = "video_average_play_time"
    POST_INTERACTIONS = "post_interactions"
    POST_REACTIONS = "post_reactions"
    POST_COMMENTS = "post_comments"
    POST_SHARES = "post_shares"
    PAGE_LIKES = "page_likes"
    THUMBNAIL_URL = "thumbnail_url"
    PREVIEW_LINK = "preview_link"


F = CanonicalField

PERFORMANCE_HEADERS: Mapping[CanonicalField, tuple[str, ...]] = {
    F.ACCOUNT_NAME: ("nombre de la cuenta", "account name"),
    F.CAMPAIGN_NAME: ("nombre de la campaña", "campaign name"),
    F.AD_SET_NAME: ("nombre del conjunto de anuncios", "ad set name"),
    F.AD_NAME: ("nombre del anuncio", "ad name"),
    F.DAY: ("día", "dia", "day"),
    F.AGE: ("edad", "age"),
    F.GENDER: ("sexo", "gender"),
    F.CAMPAIGN_DELIVERY: ("entrega de la campaña", "campaign delivery"),
    F.AD_SET_DELIVERY: ("entrega del conjunto de anuncios", "ad set delivery"),
    F.AD_DELIVERY: ("entrega del anuncio", "ad delivery"),
    F.INCLUDED_AUDIENCES: ("públicos personalizados incluidos", "included custom audiences"),
    F.EXCLUDED_AUDIENCES: ("públicos personalizados excluidos", "excluded custom audiences"),
    F.CURRENCY: ("divisa", "currency"),
    F.OBJECTIVE: ("objetivo", "objective"),
    F.VIDEO_FILE_NAME: ("nombre del video", "video file name"),
    F.IMAGE_NAME: ("nombre de la imagen", "image name"),
    F.REPORT_START: ("inicio del informe", "reporting starts"),
    F.REPORT_END: ("fin del informe", "reporting ends"),
    F.SPEND: (
        "importe gastado (eur)",
        "importe gastado (usd)",
        "importe gastado",
        "amount spent (eur)",
        "amount spent (usd)",
        "amount spent",
    ),
    F.IMPRESSIONS: ("impresiones", "impressions"),
    F.REACH: ("alcance", "reach"),
    F.FREQUENCY: ("frecuencia", "frequency"),
    F.PURCHASES: ("compras", "purchases"),
    F.PURCHASE_VALUE: ("valor de conversión de compras", "purchase conversion value"),
    F.CLICKS_ALL: ("clics (todos)", "clicks (all)"),
    F.LINK_CLICKS: ("clics en el enlace", "link clicks"),
    F.LANDING_PAGE_VIEWS: ("visitas a la página de destino", "landing page views"),
    F.ATTENTION: ("atencion", "atención", "attention"),
    F.INTEREST: ("interes", "interés", "interest"),
    F.DESIRE: ("deseo", "desire"),
    F.ADDS_TO_CART: ("artículos agregados al carrito", "adds to cart"),
    F.CHECKOUTS_INITIATED: ("pagos iniciados", "checkouts initiated"),
    F.THRUPLAYS: ("thruplays",),
    F.VIDEO_PLAYS_3S: ("reproducciones de video de 3 segundos", "3-second video plays"),
    F.VIDEO_AVERAGE_PLAY_TIME: ("tiempo promedio de reproducción del video", "average video play time"),
    F.POST_INTERACTIONS: ("interacciones con la publicación", "post interactions"),
    F.POST_REACTIONS: ("reacciones a publicaciones", "post reactions"),
    F.POST_COMMENTS: ("comentarios de publicaciones", "post comments"),
    F.POST_SHARES: ("veces que se compartieron las publicaciones", "post shares"),
    F.PAGE_LIKES: ("me gusta en facebook", "page likes"),
}

CREATIVE_LINK_HEADERS: Mapping[CanonicalField, tuple[str, ...]] = {
    F.ACCOUNT_NAME: ("nombre de la cuenta", "account name"),
    F.AD_NAME: ("nombre del anuncio", "ad name"),
    F.THUMBNAIL_URL: ("ad creative thumbnail url", "url de la miniatura del creativo"),
    F.PREVIEW_LINK: ("ad preview link", "enlace de vista previa del anuncio"),
}

NUMERIC_FIELDS: frozenset[CanonicalField] = frozenset(
    {
        F.SPEND,
        F.IMPRESSIONS,
        F.REACH,
        F.FREQUENCY,
        F.PURCHASES,
        F.PURCHASE_VALUE,
        F.CLICKS_ALL,
        F.LINK_CLICKS,
        F.LANDING_PAGE_VIEWS,
        F.ATTENTION,
        F.INTEREST,
        F.DESIRE,
        F.ADDS_TO_CART,
        F.CHECKOUTS_INITIATED,
        F.THRUPLAYS,
        F.VIDEO_PLAYS_3S,
        F.VIDEO_AVERAGE_PLAY_TIME,
        F.POST_INTERACTIONS,
        F.POST_REACTIONS,
        F.POST_COMMENTS,
        F.POST_SHARES,
        F.PAGE_LIKES,
    }
)


def normalize_header(header: object) -> str:
    return " ".join(str(header).split()).lower()


def build_header_lookup(table: Mapping[CanonicalField, tuple[str, ...]], name: str) -> dict[str, CanonicalField]:
    """Invert a canonical->headers table, rejecting malformed entries."""
    lookup: dict[str, CanonicalField] = {}
    for field, headers in table.items():
        if not isinstance(field, CanonicalField):
            raise ValueError(f"{name}: key {field!r} is not a CanonicalField")
        if not headers:
            raise ValueError(f"{name}: {field.value} has no accepted headers")
        for header in headers:
            if header != normalize_header(header):
                raise ValueError(f"{name}: header {header!r} is not normalized")
            previous = lookup.get(header)
            if previous is not None and previous is not field:
                raise ValueError(f"{name}: header {header!r} maps to both {previous.value} and {field.value}")
            lookup[header] = field
    return lookup


PERFORMANCE_LOOKUP = build_header_lookup(PERFORMANCE_HEADERS, "PERFORMANCE_HEADERS")
CREATIVE_LINK_LOOKUP = build_header_lookup(CREATIVE_LINK_HEADERS, "CREATIVE_LINK_HEADERS")
