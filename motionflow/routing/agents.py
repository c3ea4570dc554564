"""
Agent registry.

``AgentKind`` is the closed set of generation agents. ``AGENT_REGISTRY`` is
ordered: the keyword tier of the classifier scans it top to bottom, so more
specific agents come before generic ones that share keywords.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class AgentKind(str, Enum):
    TWITTER = "twitter"
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    LINKEDIN = "linkedin"
    PRESSEMITTEILUNG = "pressemitteilung"
    GROSSE_ANFRAGE = "grosse_anfrage"
    KLEINE_ANFRAGE = "kleine_anfrage"
    ANTRAG = "antrag"
    GRUENE_JUGEND = "gruene_jugend"
    LEICHTE_SPRACHE = "leichte_sprache"
    SHAREPIC_AUTO = "sharepic_auto"
    ZITAT = "zitat"
    ZITAT_WITH_IMAGE = "zitat_with_image"
    HEADLINE = "headline"
    INFO = "info"
    DREIZEILEN = "dreizeilen"
    DREIZEILEN_TEXT_ONLY = "dreizeilen_text_only"
    IMAGINE = "imagine"
    SOCIAL_MEDIA = "social_media"
    UNIVERSAL = "universal"


class Route(str, Enum):
    SOCIAL = "social"
    ANTRAG_SIMPLE = "antrag_simple"
    GRUENE_JUGEND = "gruene_jugend"
    LEICHTE_SPRACHE = "leichte_sprache"
    UNIVERSAL = "universal"
    SHAREPIC = "sharepic"
    IMAGINE = "imagine"


@dataclass(frozen=True)
class AgentSpec:
    """
    One registered agent.

    Attributes:
        kind: Agent key
        route: Downstream pipeline handling the agent
        description: Short description shown to the AI classifier
        keywords: Lower-case keywords for the keyword tier
        params: Pipeline overrides attached to every intent of this agent
    """
    kind: AgentKind
    route: Route
    description: str
    keywords: Tuple[str, ...] = ()
    params: Dict[str, Any] = field(default_factory=dict)


AGENT_REGISTRY: Tuple[AgentSpec, ...] = (
    AgentSpec(AgentKind.TWITTER, Route.SOCIAL, "Tweet / X-Beitrag",
              ("tweet", "twitter", "x post", "x-post", "x.com", "x-beitrag", "x beitrag", "xpost"),
              {"platforms": ["twitter"]}),
    AgentSpec(AgentKind.INSTAGRAM, Route.SOCIAL, "Instagram-Beitrag oder Reel-Text",
              ("instagram", "insta", "ig post", "ig-post", "reel"),
              {"platforms": ["instagram"]}),
    AgentSpec(AgentKind.FACEBOOK, Route.SOCIAL, "Facebook-Beitrag",
              ("facebook", "fb post", "fb-post"),
              {"platforms": ["facebook"]}),
    AgentSpec(AgentKind.LINKEDIN, Route.SOCIAL, "LinkedIn-Beitrag",
              ("linkedin", "linked in"),
              {"platforms": ["linkedin"]}),
    AgentSpec(AgentKind.PRESSEMITTEILUNG, Route.SOCIAL, "Pressemitteilung",
              ("pressemitteilung", "presse", "presseverteiler", "journalisten", "presseartikel"),
              {"platforms": ["pressemitteilung"]}),
    AgentSpec(AgentKind.GROSSE_ANFRAGE, Route.ANTRAG_SIMPLE, "Große Anfrage an die Verwaltung",
              ("große anfrage", "grosse anfrage", "umfassende anfrage"),
              {"request_type": "grosse_anfrage"}),
    AgentSpec(AgentKind.KLEINE_ANFRAGE, Route.ANTRAG_SIMPLE, "Kleine Anfrage an die Verwaltung",
              ("kleine anfrage", "anfrage"),
              {"request_type": "kleine_anfrage"}),
    AgentSpec(AgentKind.ANTRAG, Route.ANTRAG_SIMPLE, "Antrag für Rat oder Parlament",
              ("antrag", "beschlussvorlage", "stadtrat", "gemeinderat", "kreistag"),
              {"request_type": "default"}),
    AgentSpec(AgentKind.GRUENE_JUGEND, Route.GRUENE_JUGEND, "Aktivistischer Text für die Grüne Jugend",
              ("grüne jugend", "gruene jugend", "jugend", "aktivistisch"),
              {}),
    AgentSpec(AgentKind.LEICHTE_SPRACHE, Route.LEICHTE_SPRACHE, "Übersetzung in Leichte Sprache",
              ("leichte sprache", "einfache sprache", "einfach", "verständlich"),
              {}),
    AgentSpec(AgentKind.SHAREPIC_AUTO, Route.SHAREPIC, "Sharepic, Format wird automatisch gewählt",
              ("sharepic", "share pic", "grafik", "bild erstellen"),
              {"type": "dreizeilen"}),
    AgentSpec(AgentKind.ZITAT, Route.SHAREPIC, "Zitat-Sharepic ohne Bild",
              ("zitat", "quote"),
              {"type": "zitat_pure"}),
    AgentSpec(AgentKind.ZITAT_WITH_IMAGE, Route.SHAREPIC, "Zitat-Sharepic mit hochgeladenem Bild",
              ("zitat mit bild", "zitat mit foto"),
              {"type": "zitat"}),
    AgentSpec(AgentKind.HEADLINE, Route.SHAREPIC, "Headline-Sharepic mit Schlagzeile",
              ("headline", "schlagzeile", "überschrift", "titel"),
              {"type": "headline"}),
    AgentSpec(AgentKind.INFO, Route.SHAREPIC, "Info-Sharepic mit Fakten",
              ("info", "fakten", "infografik"),
              {"type": "info"}),
    AgentSpec(AgentKind.DREIZEILEN, Route.SHAREPIC, "Dreizeilen-Sharepic mit Bild",
              ("dreizeilen", "drei zeilen", "3 zeilen"),
              {"type": "dreizeilen"}),
    AgentSpec(AgentKind.DREIZEILEN_TEXT_ONLY, Route.SHAREPIC, "Nur die drei Zeilen, ohne Bild",
              ("nur text", "ohne bild"),
              {"type": "dreizeilen", "text_only": True}),
    AgentSpec(AgentKind.IMAGINE, Route.IMAGINE, "KI-Bildgenerierung",
              ("bild generieren", "generiere ein bild", "male ein", "imagine"),
              {}),
    AgentSpec(AgentKind.SOCIAL_MEDIA, Route.SOCIAL, "Social-Media-Beiträge für mehrere Plattformen",
              ("social media", "post", "beitrag"),
              {}),
    AgentSpec(AgentKind.UNIVERSAL, Route.UNIVERSAL, "Allgemeiner Text",
              ("text", "schreiben", "erstellen", "allgemein"),
              {}),
)

_BY_NAME: Dict[str, AgentSpec] = {spec.kind.value: spec for spec in AGENT_REGISTRY}

SHAREPIC_AGENTS = frozenset(
    spec.kind.value for spec in AGENT_REGISTRY if spec.route is Route.SHAREPIC
)


def is_known_agent(name: Optional[str]) -> bool:
    return bool(name) and name in _BY_NAME


def get_agent(name: str) -> AgentSpec:
    """Registry entry for ``name``; raises KeyError for unknown agents."""
    return _BY_NAME[name]
