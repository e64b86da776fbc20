from fpdf import FPDF
import datetime


class ReportGenerator:
    @staticmethod
    def create_pdf(aa_seq, dna_seq, metadata, history=(), max_history_rows=40):
        pdf = FPDF()
        pdf.add_page()

        # Header
        pdf.set_font("Helvetica", "B", 16)
        pdf.cell(190, 10, "freqgen Generation Report", ln=True, align="C")
        pdf.set_font("Helvetica", "", 10)
        pdf.cell(190, 10, f"Generated on: {datetime.datetime.now().strftime('%Y-%m-%d %H:%M')}", ln=True, align="C")
        pdf.ln(10)

        # Run summary
        pdf.set_fill_color(240, 240, 240)
        pdf.set_font("Helvetica", "B", 12)
        pdf.cell(190, 8, "Run Metadata", ln=True, fill=True)
        pdf.set_font("Helvetica", "", 10)
        for key, val in metadata.items():
            pdf.cell(100, 8, str(key), border=1)
            pdf.cell(90, 8, str(val), border=1, ln=True)
        pdf.ln(5)

        # Fitness history, thinned out for long runs
        if history:
            step = max(1, len(history) // max_history_rows)
            rows = list(history[::step])
            if rows[-1] is not history[-1]:
                rows.append(history[-1])
            pdf.set_font("Helvetica", "B", 11)
            pdf.cell(60, 8, "Generation", border=1)
            pdf.cell(70, 8, "Best Fitness", border=1)
            pdf.cell(60, 8, "Since Improvement", border=1, ln=True)
            pdf.set_font("Helvetica", "", 10)
            for event in rows:
                pdf.cell(60, 8, str(event.iteration_number), border=1)
                pdf.cell(70, 8, f"{event.best_individual_fitness:.6f}", border=1)
                pdf.cell(60, 8, str(event.gens_since_improvement), border=1, ln=True)
            pdf.ln(10)

        # Sequences
        pdf.set_font("Helvetica", "B", 12)
        pdf.cell(190, 8, "Amino Acid Sequence", ln=True, fill=True)
        pdf.set_font("Courier", "", 8)
        pdf.multi_cell(190, 5, aa_seq)
        pdf.ln(5)

        pdf.set_font("Helvetica", "B", 12)
        pdf.cell(190, 8, "Generated DNA Sequence", ln=True, fill=True)
        pdf.set_font("Courier", "", 8)
        pdf.multi_cell(190, 5, dna_seq)

        return bytes(pdf.output())
