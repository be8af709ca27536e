"""ADLEDGER — Header Alias Registry.

Accepted source header names per canonical field, in priority order.
Google Ads UI exports (English and Portuguese), Google Ads Script payloads
(snake_case and camelCase) and the API collector all resolve through this
table. Matching is case/diacritic-insensitive and ignores punctuation, so
"Campaign ID", "campaign_id" and "campaign-id" are the same header.
"""

from typing import Dict, Tuple


FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    # ── Dates ──
    "date": ("date", "day", "data", "dia", "segments_date"),
    # ── Campaign identity ──
    "campaign_id": (
        "campaign_id",
        "campaignId",
        "Campaign ID",
        "ID da campanha",
        "id_campanha",
        # Script payloads may carry only `campaign`
        "campaign",
    ),
    "campaign_name": (
        "campaign_name",
        "campaignName",
        "Campaign",
        "Campanha",
        "Nome da campanha",
        "nome_campanha",
    ),
    "campaign_type": (
        "campaign_type",
        "campaignType",
        "Campaign type",
        "Tipo da campanha",
        "tipo_campanha",
        "type",
    ),
    "campaign_status": (
        "campaign_status",
        "campaignStatus",
        "Campaign status",
        "Campaign state",
        "Status da campanha",
        "status_campanha",
        "status",
    ),
    "bidding_strategy": (
        "bidding_strategy",
        "biddingStrategy",
        "Bid strategy type",
        "Estratégia de lances",
    ),
    "advertising_channel_type": (
        "advertising_channel_type",
        "advertisingChannelType",
        "channel_type",
        "canal",
        "channel",
    ),
    # ── Ad groups / ads ──
    "ad_group_id": (
        "ad_group_id",
        "adGroupId",
        "Ad group ID",
        "AdGroup ID",
        "ID do grupo de anúncios",
        "Grupo de anúncios ID",
        "ad_group",
    ),
    "ad_group_name": (
        "ad_group_name",
        "adGroupName",
        "Ad group",
        "Grupo de anúncios",
    ),
    "ad_id": ("ad_id", "adId", "Ad ID", "id_anuncio", "anuncio_id"),
    "ad_type": ("ad_type", "adType", "Ad type", "tipo_anuncio", "tipo de anuncio"),
    "ad_status": ("ad_status", "adStatus", "Ad status", "status"),
    # ── Keywords ──
    "keyword_text": (
        "keyword_text",
        "keywordText",
        "Keyword",
        "Search keyword",
        "Palavra-chave",
        "Palavra chave",
    ),
    "match_type": (
        "match_type",
        "matchType",
        "Match type",
        "Search keyword match type",
        "Tipo de correspondência",
    ),
    "keyword_status": (
        "keyword_status",
        "keywordStatus",
        "Keyword status",
        "status",
    ),
    "cpc_bid": ("cpc_bid", "cpcBid", "Max. CPC", "CPC máx."),
    "quality_score": (
        "quality_score",
        "qualityScore",
        "Quality Score",
        "Índice de qualidade",
    ),
    "ad_relevance": ("ad_relevance", "adRelevance", "Ad relevance", "Relevância do anúncio"),
    "landing_page_experience": (
        "landing_page_experience",
        "landingPageExperience",
        "Landing page exp.",
        "Experiência na página de destino",
    ),
    "expected_ctr": ("expected_ctr", "expectedCtr", "Exp. CTR", "CTR esperada"),
    # ── Performance Max ──
    "asset_group_id": (
        "asset_group_id",
        "assetGroupId",
        "id_asset_group",
        "Asset group ID",
        "asset_group",
    ),
    "asset_group_name": (
        "asset_group_name",
        "assetGroupName",
        "nome_asset_group",
        "Asset group",
    ),
    "asset_resource_name": (
        "asset_resource_name",
        "assetResourceName",
        "Asset resource name",
        "asset",
    ),
    "asset_id": ("asset_id", "assetId", "Asset ID"),
    "asset_type": ("asset_type", "assetType", "tipo_asset", "type"),
    "field_type": ("field_type", "fieldType", "campo", "field"),
    "performance_label": ("performance_label", "performanceLabel", "performance"),
    "category_label": ("category_label", "categoryLabel", "categoria", "category"),
    "product_item_id": (
        "product_item_id",
        "productItemId",
        "item_id",
        "offer_id",
        "offerId",
    ),
    "product_title": ("product_title", "productTitle", "title"),
    "product_brand": ("product_brand", "productBrand", "brand"),
    "product_type_l1": (
        "product_type_l1",
        "productTypeL1",
        "product_type",
        "productType",
    ),
    "signal_type": ("signal_type", "signalType", "type"),
    "signal_value": ("signal_value", "signalValue", "value"),
    # ── Measures ──
    "impressions": ("impressions", "Impr.", "impressoes", "impressões"),
    "clicks": ("clicks", "cliques"),
    "cost": ("cost", "custo", "spend", "gasto"),
    "conversions": ("conversions", "Conv.", "conversoes", "conversões"),
    "conversion_value": (
        "conversion_value",
        "conversionValue",
        "Conv. value",
        "Conversion value",
        "valor_conversao",
        "Valor de conversão",
    ),
}


def aliases_for(field: str) -> Tuple[str, ...]:
    """Look up the accepted header names for a canonical field."""
    return FIELD_ALIASES[field]
