"""Lexer and parser for effect annotation text.

Two annotation forms are understood::

    effect(io | state)
    rel(f, g.apply, this.run)

Effect names are left uninterpreted here; the effect domain maps them to
lattice elements and resolves ``rel`` targets against the annotated symbol.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union
import logging

import ply.lex as lex
import ply.yacc as yacc

from effinfer.errors import annotation_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectSpec:
    """Concrete effect, as a join of effect names"""
    names: Tuple[str, ...]


@dataclass(frozen=True)
class RelSpec:
    """One relative effect: `target` is a parameter name or 'this'"""
    target: str
    member: Optional[str] = None

    @property
    def is_this(self) -> bool:
        return self.target == 'this'


@dataclass(frozen=True)
class RelSpecs:
    specs: Tuple[RelSpec, ...]


Annotation = Union[EffectSpec, RelSpecs]


class AnnotationLexer:
    t_ignore = ' \t'

    reserved = {
        'effect': 'EFFECT',
        'rel': 'REL',
        'this': 'THIS',
    }

    tokens = [
        'IDENTIFIER', 'LPAREN', 'RPAREN', 'PIPE', 'COMMA', 'DOT', 'AT',
    ] + list(reserved.values())

    t_LPAREN = r'\('
    t_RPAREN = r'\)'
    t_PIPE = r'\|'
    t_COMMA = r','
    t_DOT = r'\.'
    t_AT = r'@'

    def t_IDENTIFIER(self, t):
        r'[a-zA-Z_][a-zA-Z_0-9]*'
        t.type = self.reserved.get(t.value, 'IDENTIFIER')
        return t

    def t_error(self, t):
        raise annotation_error(
            f"Illegal character '{t.value[0]}' at position {t.lexpos}", self.text)

    def __init__(self):
        self.lexer = lex.lex(module=self, errorlog=logger)
        self.text = ''

    def input(self, data):
        self.text = data
        self.lexer.input(data)

    def token(self):
        return self.lexer.token()


class AnnotationParser:
    start = 'annotation'

    def __init__(self):
        self.lexer = AnnotationLexer()
        self.tokens = self.lexer.tokens
        self.parser = yacc.yacc(module=self, write_tables=False, debug=False,
                                tabmodule='effinfer_annotation_parsetab',
                                errorlog=logger)
        self._cache: Dict[str, Annotation] = {}
        self.text = ''

    def parse(self, text: str) -> Annotation:
        """Parse one annotation; raises CompileError on malformed text"""
        if text in self._cache:
            return self._cache[text]
        self.text = text
        result = self.parser.parse(text, lexer=self.lexer)
        if result is None:
            raise annotation_error("Empty annotation", text)
        logger.debug(f"Parsed annotation {text!r}: {result}")
        self._cache[text] = result
        return result

    def p_annotation(self, p):
        '''annotation : AT annotation_body
                      | annotation_body'''
        p[0] = p[2] if len(p) == 3 else p[1]

    def p_annotation_body_effect(self, p):
        'annotation_body : EFFECT LPAREN effect_expr RPAREN'
        p[0] = EffectSpec(tuple(p[3]))

    def p_annotation_body_rel(self, p):
        'annotation_body : REL LPAREN rel_specs RPAREN'
        p[0] = RelSpecs(tuple(p[3]))

    def p_effect_expr(self, p):
        '''effect_expr : effect_expr PIPE IDENTIFIER
                       | IDENTIFIER'''
        if len(p) == 2:
            p[0] = [p[1]]
        else:
            p[0] = p[1] + [p[3]]

    def p_rel_specs(self, p):
        '''rel_specs : rel_specs COMMA rel_spec
                     | rel_spec'''
        if len(p) == 2:
            p[0] = [p[1]]
        else:
            p[0] = p[1] + [p[3]]

    def p_rel_spec(self, p):
        '''rel_spec : IDENTIFIER
                    | THIS
                    | IDENTIFIER DOT IDENTIFIER
                    | THIS DOT IDENTIFIER'''
        if len(p) == 2:
            p[0] = RelSpec(p[1])
        else:
            p[0] = RelSpec(p[1], p[3])

    def p_error(self, p):
        if p is None:
            raise annotation_error("Unexpected end of annotation", self.text)
        raise annotation_error(
            f"Unexpected token '{p.value}' at position {p.lexpos}", self.text)


_default_parser: Optional[AnnotationParser] = None


def parse_annotation(text: str) -> Annotation:
    """Parse with a shared parser instance"""
    global _default_parser
    if _default_parser is None:
        _default_parser = AnnotationParser()
    return _default_parser.parse(text)
