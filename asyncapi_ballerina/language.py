"""
Metamodel and model builders for the Ballerina service subset.

The reverse generator reads Ballerina WebSocket services with the textX
grammar in grammar/ballerina.tx and validates a few module level rules here.
"""

from os.path import abspath, dirname, join

from textx import get_children_of_type, get_location, metamodel_from_file, TextXSemanticError


# ------------------------------------------------------------------------------
# Constants
THIS_DIR = dirname(abspath(__file__))
GRAMMAR_DIR = join(THIS_DIR, "grammar")


# ------------------------------------------------------------------------------
# Public model builders

def build_module(module_path: str):
    """Parse & validate a Ballerina source file."""
    return BallerinaMetaModel.model_from_file(module_path)


def build_module_str(module_str: str):
    """Parse & validate Ballerina source text."""
    return BallerinaMetaModel.model_from_str(module_str)


# ------------------------------------------------------------------------------
# Validation

def verify_unique_names(model, metamodel=None):
    """Type, enum and class names share one namespace."""
    seen = {}
    kinds = ("TypeDefinition", "EnumDecl", "ServiceClass")
    for kind in kinds:
        for obj in get_children_of_type(kind, model):
            if obj.name in seen:
                raise TextXSemanticError(
                    f"Duplicate definition '{obj.name}' (already defined as {seen[obj.name]})",
                    **get_location(obj),
                )
            seen[obj.name] = kind


def verify_resource_paths(model, metamodel=None):
    """Path parameter names must be unique within one resource path."""
    for function in get_children_of_type("ResourceFunction", model):
        names = [s.name for s in function.path.segments if s.__class__.__name__ == "PathParam"]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise TextXSemanticError(
                f"Resource path repeats path parameter(s) {sorted(duplicates)}",
                **get_location(function),
            )


# ------------------------------------------------------------------------------
# Metamodel creation

def get_metamodel(debug: bool = False):
    """Load the textX metamodel from grammar/ballerina.tx and register model processors."""
    mm = metamodel_from_file(
        join(GRAMMAR_DIR, "ballerina.tx"),
        auto_init_attributes=True,
        autokwd=True,
        debug=debug,
    )
    mm.register_model_processor(verify_unique_names)
    mm.register_model_processor(verify_resource_paths)
    return mm


BallerinaMetaModel = get_metamodel()
