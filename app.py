import streamlit as st
import os
import sys
import pandas as pd
import plotly.graph_objects as go
from io import StringIO

# Make the src/ layout importable when launched with `streamlit run app.py`
sys.path.append(os.path.join(os.path.dirname(__file__), 'src'))

from freqgen.config import GeneratorConfig
from freqgen.data_loaders import DataLoader
from freqgen.exceptions import FreqgenError
from freqgen.generator import generate
from freqgen.kmers import featurize
from freqgen.utils.export import SequenceExporter
from freqgen.utils.reporting import ReportGenerator

# --- Page config ---
st.set_page_config(
    page_title="freqgen",
    page_icon="🧬",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
    <style>
    .stApp { background-color: #f8f9fa; }
    .stTabs [data-baseweb="tab-list"] { gap: 10px; background-color: transparent; }
    .stTabs [data-baseweb="tab"] {
        height: 50px;
        background-color: #e9ecef;
        border-radius: 8px 8px 0 0;
        padding: 0 25px;
        font-weight: 600;
    }
    .stTabs [aria-selected="true"] { background-color: #2e7d32 !important; color: white !important; }
    [data-testid="stMetricValue"] { font-size: 1.8rem !important; color: #1b5e20; }
    </style>
""", unsafe_allow_html=True)

loader = DataLoader()

# --- Plots ---

def get_profile_plot(profile, title, top=40):
    """Bar chart of the most frequent k-mers of one profile"""
    items = sorted(profile.items(), key=lambda x: x[1], reverse=True)[:top]
    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=[k for k, _ in items], y=[v for _, v in items],
        marker_color='#2ecc71'
    ))
    fig.update_layout(
        title=title,
        height=350,
        margin=dict(l=10, r=10, t=40, b=10),
        xaxis_title="k-mer",
        yaxis_title="Frequency",
    )
    return fig

def get_fitness_plot(history):
    """Best fitness per generation (lower is better)"""
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=[e.iteration_number for e in history],
        y=[e.best_individual_fitness for e in history],
        name="Best fitness",
        line=dict(color='#3498db', width=3),
        fill='tozeroy',
        fillcolor='rgba(52, 152, 219, 0.1)'
    ))
    fig.update_layout(
        height=350,
        margin=dict(l=10, r=10, t=40, b=10),
        xaxis_title="Generation",
        yaxis_title="Distance to target",
        hovermode="x unified"
    )
    return fig

# --- Sidebar ---

with st.sidebar:
    st.title("freqgen")
    st.caption("k-mer and codon usage matching")
    st.divider()

    st.markdown("#### 🧬 Evolution")
    params = {
        'genetic_code': st.number_input("Genetic code (NCBI table)", 1, 33, 11),
        'population_size': st.select_slider("Population Size", [10, 20, 50, 100, 200], 100),
        'mutation_probability': st.slider("Mutation rate", 0.0, 1.0, 0.3),
        'crossover_probability': st.slider("Crossover rate", 0.0, 1.0, 0.8),
        'max_gens_since_improvement': st.number_input("Early stopping (generations)", 1, 1000, 50),
        'rel_tol': st.number_input("Relative tolerance", 0.0, 1.0, 0.0001, format="%.5f"),
        'pop_count': st.number_input("Populations", 1, 20, 1),
        'weighting': st.radio("k weighting", ["equal", "alphabet"]),
        'cache': st.checkbox("Cache fitness values", True),
    }
    seed_text = st.text_input("Random seed (optional)", "")
    params['seed'] = int(seed_text) if seed_text.strip().isdigit() else None

st.title("🧬 freqgen")
st.caption("Featurize reference sequences, then evolve a DNA sequence that mimics their k-mer usage")
st.markdown("---")

t1, t2 = st.tabs(["📊 Featurize", "🧪 Generate"])

# --- Tab 1: featurize ---
with t1:
    files = st.file_uploader("Upload FASTA files", type=["fasta", "fa", "fna", "txt"], accept_multiple_files=True)
    k_values = st.multiselect("k values", list(range(1, 9)), [1, 2, 3])
    use_codons = st.checkbox("Featurize codons", True)
    skip_short = st.checkbox("Skip sequences shorter than k", False)

    if files and st.button("🛠️ Featurize", type="primary"):
        try:
            seqs = loader.read_sequences([StringIO(f.getvalue().decode("utf-8")) for f in files])
            profiles = featurize(seqs, k_values, codons=use_codons, skip_short=skip_short)
            st.success(f"Featurized {len(files)} file(s) with {len(seqs)} sequence(s).")

            for key, profile in profiles.items():
                label = "Codons" if key == "codons" else f"{key}-mers"
                st.plotly_chart(get_profile_plot(profile, label), use_container_width=True)

            st.download_button("📥 Download YAML", loader.dump_profiles(profiles), "frequencies.yaml",
                               use_container_width=True)
        except FreqgenError as e:
            st.error(f"❌ {e}")

# --- Tab 2: generate ---
with t2:
    col_input, col_info = st.columns([2, 1])

    with col_input:
        target_file = st.file_uploader("Upload target frequencies (YAML)", type=["yaml", "yml"])
        seq_input = st.text_area(
            "Input sequence:",
            height=150,
            placeholder="Paste protein sequence (e.g., MSKGEEL...)",
        )
        is_dna = st.checkbox("Input is DNA (translate first)", False)

    with col_info:
        st.info("""
        **How it works:**
        - Each candidate is a synonymous re-encoding of the protein.
        - Fitness is the squared distance between its k-mer/codon usage and the target.
        - The search stops after the configured number of generations without improvement.
        """)
        run_btn = st.button("🚀 Start Evolution", type="primary", use_container_width=True)

    if run_btn:
        if target_file is None or not seq_input.strip():
            st.error("❌ Provide both a target YAML file and a sequence.")
        else:
            try:
                targets = loader.read_targets(StringIO(target_file.getvalue().decode("utf-8")))
                config = GeneratorConfig(**params)

                status_box = st.empty()

                def on_generation(event):
                    # per-generation details only make sense for a single population
                    if config.pop_count > 1:
                        return
                    status_box.text(
                        f"Generation number:\t{event.iteration_number}\n"
                        f"Current fitness:\t{event.best_individual_fitness:.4f}\n"
                        f"Since increase:\t{event.gens_since_improvement}"
                    )

                with st.status("🧬 Evolving populations...", expanded=True) as status:
                    result, metadata = generate(seq_input, targets, config, observer=on_generation, dna=is_dna)
                    status.update(label="✅ Done", state="complete", expanded=False)

                st.markdown("### 📈 Result")
                m1, m2, m3 = st.columns(3)
                m1.metric("Fitness", f"{result.fitness:.4f}")
                m2.metric("Generations", len(result.history))
                m3.metric("Duration", f"{metadata['durationMilliseconds'] / 1000:.2f}s")

                st.plotly_chart(get_fitness_plot(result.history), use_container_width=True)
                st.table(pd.DataFrame.from_dict(metadata, orient='index', columns=['Value']).astype(str))

                st.subheader("Generated DNA Sequence")
                st.code(result.sequence, language="text")

                description = SequenceExporter.describe("input", target_file.name, metadata)
                dl_col1, dl_col2, dl_col3 = st.columns(3)
                with dl_col1:
                    st.download_button("📥 Download FASTA", SequenceExporter.to_fasta(result.sequence, description),
                                       "freqgen.fasta", use_container_width=True)
                with dl_col2:
                    gb_data = SequenceExporter.to_genbank(result.sequence, result.protein, description)
                    st.download_button("📥 Download GenBank (.gb)", gb_data, "freqgen.gb", use_container_width=True)
                with dl_col3:
                    pdf_rep = ReportGenerator.create_pdf(result.protein, result.sequence, metadata, result.history)
                    st.download_button("📄 Download PDF Report", data=pdf_rep, file_name="freqgen_report.pdf",
                                       use_container_width=True)

            except FreqgenError as e:
                st.error(f"❌ {e}")
