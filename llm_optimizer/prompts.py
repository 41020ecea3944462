"""
Prompt templates and user-facing messages, per language.

Free text is requested in the configured language; enumerated labels
(provider names, priority, effort) stay in English in every language.
"""
from langchain_core.prompts import PromptTemplate

SUPPORTED_LANGUAGES = ("en", "de")
DEFAULT_LANGUAGE = "en"

# Stage 1 prompt
SIMULATION_PROMPTS = {
    "en": """
You are a reverse-engineering engine that simulates the internal search process of large language models.
The user wants information about: "{keyword}".

Simulate the "network traffic" of each provider's reasoning process.
For EACH of the following providers: {providers}
1. List the plausible internal sub-queries that provider would issue while researching the keyword.
2. Use the provider name exactly as written.

Then classify the detected user intent and rate these metadata signals:
- priceSensitivity (Low, Medium, High)
- technicalDepth (Low, Medium, High)
- reviewImportance (0-100)

Answer in English.
""",
    "de": """
Du bist eine Reverse-Engineering-Engine, die den internen Suchprozess von LLMs simuliert.
Der Benutzer möchte Informationen zu: "{keyword}".

Simuliere den "Netzwerkverkehr" des Denkprozesses jedes Anbieters.
Für JEDEN der folgenden Anbieter: {providers}
1. Liste die plausiblen internen Unterabfragen (Sub-Queries), die dieser Anbieter generieren würde.
2. Verwende den Anbieternamen exakt wie angegeben.

Bestimme danach die erkannte Nutzerabsicht und bewerte diese Metadaten:
- priceSensitivity (Low, Medium, High)
- technicalDepth (Low, Medium, High)
- reviewImportance (0-100)

Antworte strikt auf Deutsch (Standarddeutsch), die Feldnamen bleiben unverändert.
""",
}

# Stage 2 prompt
ANALYSIS_PROMPTS = {
    "en": """
Analyze the following intercepted LLM search data to build an LLM-SEO strategy.
Target keyword: {keyword}
Internal queries: {queries}
Detected metadata: {metadata}

Your goal is to explain to the user how to reach the first position in AI answers for this topic.
1. Identify 5-7 ranking factors and score each from 0 to 100.
2. Group the discovered terms into topic clusters.
3. Create a prioritized, actionable action plan. priority MUST be one of High, Medium, Low; effort MUST be one of Easy, Medium, Hard.

Answer in English.
""",
    "de": """
Analysiere die folgenden abgefangenen LLM-Suchdaten, um eine LLM-SEO-Strategie zu erstellen.
Ziel-Keyword: {keyword}
Interne Abfragen: {queries}
Erkannte Metadaten: {metadata}

Dein Ziel ist es, dem Nutzer zu erklären, wie er für dieses Thema auf Platz 1 der KI-Antworten landet.
1. Identifiziere 5-7 Ranking-Faktoren und bewerte jeden mit 0 bis 100.
2. Gruppiere die Begriffe in thematische Cluster.
3. Erstelle einen priorisierten, umsetzbaren Massnahmenplan. priority MUSS einer von High, Medium, Low sein; effort MUSS einer von Easy, Medium, Hard sein.

Antworte ausschliesslich auf Deutsch, die Feldnamen und Aufzählungswerte bleiben auf Englisch.
""",
}

SIMULATION_FAILED_MESSAGES = {
    "en": "Failed to simulate the network traffic.",
    "de": "Fehler bei der Simulation des Netzwerkverkehrs.",
}

ANALYSIS_FAILED_MESSAGES = {
    "en": "Failed to generate the strategy report.",
    "de": "Fehler bei der Erstellung des Strategieberichts.",
}

UNKNOWN_ERROR_MESSAGES = {
    "en": "An unknown error occurred.",
    "de": "Ein unbekannter Fehler ist aufgetreten.",
}


def resolve_language(language: str) -> str:
    if language not in SUPPORTED_LANGUAGES:
        raise ValueError(f"Unsupported language: {language} (expected one of {', '.join(SUPPORTED_LANGUAGES)})")
    return language


def simulation_prompt(language: str) -> PromptTemplate:
    return PromptTemplate.from_template(SIMULATION_PROMPTS[resolve_language(language)])


def analysis_prompt(language: str) -> PromptTemplate:
    return PromptTemplate.from_template(ANALYSIS_PROMPTS[resolve_language(language)])


def simulation_failed_message(language: str) -> str:
    return SIMULATION_FAILED_MESSAGES[resolve_language(language)]


def analysis_failed_message(language: str) -> str:
    return ANALYSIS_FAILED_MESSAGES[resolve_language(language)]


def unknown_error_message(language: str) -> str:
    return UNKNOWN_ERROR_MESSAGES[resolve_language(language)]
