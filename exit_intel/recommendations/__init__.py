"""
Recommendation engine: converts DRS / RSS / BQS signals into ranked,
EBITDA-personalized playbook recommendations.

Modules
-------
registry : PlaybookDefinition + ScoringTrigger + PLAYBOOK_REGISTRY
           + get_playbook() / playbooks_by_category() / validate_registry().
signals  : SignalMaps + build_signal_maps() — normalization to 0–1.
matcher  : lookup_signal() — exact / prefix matching per signal source.
scorer   : score_playbook() + personalize_impact() — pure functions.
ranker   : RecommendationTuning + recommend_playbooks() — the entry point.
reporter : result_to_dict() + write_recommendation_json() — file output.
"""
