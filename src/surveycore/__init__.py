"""
Survey Core Package

Authoring model, access policy, response collection and statistics for
multi-question surveys.

ARCHITECTURAL GUARANTEE:
------------------------
This package contains ZERO knowledge of:
    - Rendering or page navigation
    - Routing, sessions or cookies
    - Any particular database or auth vendor

Storage and identity are reached only through surveycore.store.SurveyStore
and surveycore.identity.IdentityProvider.
"""

__version__ = "0.1.0"
