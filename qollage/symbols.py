"""
Names of Typst's `sym` module (Typst 0.11, the version quill 0.2.1 runs on).

TYPST_SYMBOLS maps every symbol name to the set of its modifier variants,
e.g. "theta" -> {"alt"}. A bare name is always valid; "theta.alt" is valid
because "alt" is listed.
"""

from typing import Dict, Set

# One symbol with its variants per "name: variant variant" line, or several
# symbols without variants on a plain line.
_SYMBOL_TABLE = """
wj zwj zwnj zws lrm rlm
space: nobreak nobreak.narrow en quad third quarter sixth med fig punct thin hair
paren: l r t b
brace: l r t b
bracket: l l.double r r.double t b
shell: l r t b
bar: v v.double v.triple v.broken v.circle h
fence: l l.double r r.double dotted
angle: l r l.double r.double acute arc arc.rev rev right right.rev right.arc right.dot right.sq s spatial spheric spheric.rev spheric.top
ceil: l r
floor: l r
amp: inv
ast: op basic low double triple small square circle
at
backslash: circle not
co
colon: eq double.eq
comma
dagger: double
dash: en em fig wave colon circle wave.double
dot: op basic c circle circle.big square double triple quad
excl: double inv quest
interrobang: inv
hash
hyph: minus nobreak point soft
percent
copyright: sound
permille
pilcrow: rev
section
semi: rev
slash: double triple big
dots: h.c h v down up
tilde: op basic eq eq.not eq.rev equiv equiv.not nequiv not rev rev.equiv triple
acute: double
breve caret caron hat diaer grave macron
quote: double single l.double l.single r.double r.single angle.l.double angle.l.single angle.r.double angle.r.single high.double high.single low.double low.single
prime: rev double double.rev triple triple.rev quad
plus: circle circle.arrow circle.big dot minus small square triangle
minus: circle dot plus square tilde triangle
div: circle
times: big circle circle.big div three.l three.r l r square triangle
ratio
eq: star circle colon def delta equi est gt lt m not prec quest small succ triple quad
gt: circle dot approx double eq eq.slant eq.lt eq.not equiv lt lt.not neq napprox nequiv not ntilde small tilde tilde.not tri tri.eq tri.eq.not tri.not triple triple.nested
lt: circle dot approx double eq eq.slant eq.gt eq.not equiv gt gt.not neq napprox nequiv not ntilde small tilde tilde.not tri tri.eq tri.eq.not tri.not triple triple.nested
approx: eq not
prec: approx curly.eq curly.eq.not double eq equiv napprox neq nequiv not ntilde tilde
succ: approx curly.eq curly.eq.not double eq equiv napprox neq nequiv not ntilde tilde
equiv: not
prop
emptyset: rev
nothing: rev
without
complement
in: not rev rev.not rev.small small
subset: dot double eq eq.not eq.sq eq.sq.not neq not sq sq.neq
supset: dot double eq eq.not eq.sq eq.sq.not neq not sq sq.neq
union: arrow big dot dot.big double minus or plus plus.big sq sq.big sq.double
sect: and big dot double sq sq.big sq.double
infinity oo diff nabla
sum: integral
product: co
integral: arrow.hook ccw cont cont.ccw cont.cw cw dash dash.double double quad sect slash square surf times triple union vol
laplace forall
exists: not
top bot not
and: big curly dot double
or: big curly dot double
xor: big
models
forces: not
therefore because qed
compose convolve multimap
tiny miny
diameter
join: r l l.r
degree: c f
smash
bitcoin dollar euro franc lira peso pound ruble rupee won yen
ballot: x
checkmark: light
floral: l r
notes: up down
refmark servicemark maltese
suit: club diamond heart spade
bullet
circle: stroked stroked.tiny stroked.small stroked.big filled filled.tiny filled.small filled.big dotted nested
ellipse: stroked.h stroked.v filled.h filled.v
triangle: stroked.t stroked.b stroked.r stroked.l stroked.bl stroked.br stroked.tl stroked.tr stroked.small.t stroked.small.b stroked.small.r stroked.small.l stroked.rounded stroked.nested stroked.dot filled.t filled.b filled.r filled.l filled.bl filled.br filled.tl filled.tr filled.small.t filled.small.b filled.small.r filled.small.l
square: stroked stroked.tiny stroked.small stroked.medium stroked.big stroked.dotted stroked.rounded filled filled.tiny filled.small filled.medium filled.big
rect: stroked.h stroked.v filled.h filled.v
penta: stroked filled
hexa: stroked filled
diamond: stroked stroked.small stroked.medium stroked.dot filled filled.medium filled.small
lozenge: stroked stroked.small stroked.medium filled filled.small filled.medium
parallelogram: stroked filled
star: op stroked filled
arrows: rr ll tt bb lr lr.stop rl tb bt rrr lll
harpoon: rt rt.bar rt.stop rb rb.bar rb.stop lt lt.bar lt.stop lb lb.bar lb.stop tl tl.bar tl.stop tr tr.bar tr.stop bl bl.bar bl.stop br br.bar br.stop lt.rt lb.rb lb.rt lt.rb tl.bl tr.br tl.br tr.bl
harpoons: rtrb blbr bltr lbrb ltlb ltrb ltrt rblb rtlb rtlt tlbr tltr
tack: r r.not r.long r.short r.double r.double.not l l.long l.short l.double l.r t t.big t.double t.short b b.big b.double b.short
alpha chi delta eta gamma iota lambda mu nu omega omicron psi tau upsilon xi zeta
beta: alt
epsilon: alt
kai
kappa: alt
phi: alt
pi: alt
rho: alt
sigma: alt
theta: alt
ohm: inv
Alpha Beta Chi Delta Epsilon Eta Gamma Iota Kai Kappa Lambda Mu Nu Omega Omicron
Phi Pi Psi Rho Sigma Tau Theta Upsilon Xi Zeta
aleph alef beth bet gimmel gimel daleth dalet shin
AA BB CC DD EE FF GG HH II JJ KK LL MM NN OO PP QQ RR SS TT UU VV WW XX YY ZZ
angstrom ell Re Im
planck: reduce
dotless: i j
die: six five four three two one
errorbar: square.stroked square.filled diamond.stroked diamond.filled circle.stroked circle.filled
gender: female female.double female.male intersex male male.double male.female male.stroke neuter trans
"""

_ARROW_HORIZONTAL = (
    "", "bar", "curve", "dashed", "dotted", "double", "double.bar", "double.long",
    "double.long.bar", "double.not", "filled", "hook", "long", "long.bar", "long.squiggly",
    "loop", "not", "quad", "squiggly", "stop", "stroked", "tail", "tilde", "triple",
    "twohead", "twohead.bar", "wave",
)
_ARROW_VERTICAL = (
    "", "bar", "curve", "dashed", "double", "filled", "quad", "stop", "stroked", "triple",
    "twohead",
)
_ARROW_DIAGONAL = ("", "double", "filled", "hook", "stroked")
_ARROW_EXTRA = (
    "l.r", "l.r.double", "l.r.double.long", "l.r.double.not", "l.r.filled", "l.r.long",
    "l.r.not", "l.r.stroked", "l.r.wave", "t.b", "t.b.double", "t.b.filled", "t.b.stroked",
    "tl.br", "tr.bl", "ccw", "ccw.half", "cw", "cw.half", "zigzag",
)


def _parse_table(table: str) -> Dict[str, Set[str]]:
    symbols: Dict[str, Set[str]] = {}
    for line in table.strip().splitlines():
        if ":" in line:
            name, variants = line.split(":", 1)
            symbols[name.strip()] = set(variants.split())
        else:
            for name in line.split():
                symbols.setdefault(name, set())
    return symbols


def _arrow_variants() -> Set[str]:
    variants = set(_ARROW_EXTRA)
    for directions, modifiers in ((("r", "l"), _ARROW_HORIZONTAL),
                                  (("t", "b"), _ARROW_VERTICAL),
                                  (("tr", "tl", "br", "bl"), _ARROW_DIAGONAL)):
        for direction in directions:
            for modifier in modifiers:
                variants.add(f"{direction}.{modifier}" if modifier else direction)
    return variants


TYPST_SYMBOLS: Dict[str, Set[str]] = _parse_table(_SYMBOL_TABLE)
TYPST_SYMBOLS["arrow"] = _arrow_variants()
